"""Seed catalog data.

Races, classes, items and enemies loaded into an empty database. A new
character's stats are its race's plus its class's.
"""

from __future__ import annotations

from dragon_engine.models.enums import ItemType


# =============================================================================
# Enemies
# =============================================================================

ENEMIES = [
    {"name": "Goblin", "health": 30, "attack": 5, "defense": 2, "sprite_path": "sprites/goblin.png", "is_boss": False},
    {"name": "Orc", "health": 50, "attack": 10, "defense": 5, "sprite_path": "sprites/orc.png", "is_boss": False},
    {"name": "Dragon", "health": 200, "attack": 25, "defense": 15, "sprite_path": "sprites/dragon.png", "is_boss": True},
]

# =============================================================================
# Races & Classes
# =============================================================================

RACES = [
    {"name": "Human", "health": 100, "attack": 10, "defense": 10, "sprite_path": "sprites/human.png"},
    {"name": "Elf", "health": 80, "attack": 15, "defense": 5, "sprite_path": "sprites/elf.png"},
    {"name": "Dwarf", "health": 120, "attack": 8, "defense": 15, "sprite_path": "sprites/dwarf.png"},
]

CLASSES = [
    {"name": "Warrior", "health": 120, "attack": 15, "defense": 10, "sprite_path": "sprites/warrior.png"},
    {"name": "Mage", "health": 70, "attack": 25, "defense": 5, "sprite_path": "sprites/mage.png"},
    {"name": "Rogue", "health": 90, "attack": 20, "defense": 8, "sprite_path": "sprites/rogue.png"},
]

# =============================================================================
# Items
# =============================================================================

ITEMS = [
    # Potions
    {
        "name": "Small Health Potion",
        "item_type": ItemType.POTION,
        "heal_amount": 50,
        "description": "Restores 50 health points.",
        "sprite_path": "sprites/health_potion.png",
        "rarity": 0,
    },
    {
        "name": "Large Health Potion",
        "item_type": ItemType.POTION,
        "heal_amount": 100,
        "description": "Restores 100 health points.",
        "sprite_path": "sprites/large_health_potion.png",
        "rarity": 1,
    },
    # Weapons
    {
        "name": "Short Sword",
        "item_type": ItemType.WEAPON,
        "attack": 10,
        "description": "A basic short sword.",
        "sprite_path": "sprites/short_sword.png",
        "rarity": 0,
    },
    {
        "name": "Long Bow",
        "item_type": ItemType.WEAPON,
        "attack": 15,
        "description": "A long-range bow.",
        "sprite_path": "sprites/long_bow.png",
        "rarity": 1,
    },
    {
        "name": "Staff of Fire",
        "item_type": ItemType.WEAPON,
        "attack": 20,
        "description": "A magical staff that shoots fire.",
        "sprite_path": "sprites/staff_of_fire.png",
        "rarity": 2,
    },
    # Armor
    {
        "name": "Leather Armour",
        "item_type": ItemType.ARMOR,
        "hp_bonus": 20,
        "description": "Basic leather armour.",
        "sprite_path": "sprites/leather_armour.png",
        "rarity": 0,
    },
    {
        "name": "Chainmail",
        "item_type": ItemType.ARMOR,
        "hp_bonus": 40,
        "description": "Sturdy chainmail armour.",
        "sprite_path": "sprites/chainmail.png",
        "rarity": 1,
    },
    {
        "name": "Plate Armour",
        "item_type": ItemType.ARMOR,
        "hp_bonus": 60,
        "description": "Heavy plate armour.",
        "sprite_path": "sprites/plate_armour.png",
        "rarity": 2,
    },
    # Shields
    {
        "name": "Wooden Shield",
        "item_type": ItemType.SHIELD,
        "defense": 5,
        "description": "A basic wooden shield.",
        "sprite_path": "sprites/wooden_shield.png",
        "rarity": 0,
    },
    {
        "name": "Iron Shield",
        "item_type": ItemType.SHIELD,
        "defense": 10,
        "description": "A sturdy iron shield.",
        "sprite_path": "sprites/iron_shield.png",
        "rarity": 1,
    },
    {
        "name": "Dragon Shield",
        "item_type": ItemType.SHIELD,
        "defense": 20,
        "description": "A shield made from dragon scales.",
        "sprite_path": "sprites/dragon_shield.png",
        "rarity": 2,
    },
]


__all__ = ["ENEMIES", "RACES", "CLASSES", "ITEMS"]
