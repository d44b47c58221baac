"""Per-campaign locking.

Each campaign gets its own lock so one action's read-modify-write
finishes before the next starts. Different campaigns never wait on
each other.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from dragon_engine.core.exceptions import CampaignBusyError
from dragon_engine.core.logging import get_logger


logger = get_logger(__name__)


class CampaignLockRegistry:
    """Lazily created ``threading.Lock`` per campaign id."""

    def __init__(self, *, timeout_seconds: float = 5.0) -> None:
        self.timeout_seconds = timeout_seconds
        self._locks: dict[int, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, campaign_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(campaign_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[campaign_id] = lock
            return lock

    @contextmanager
    def hold(self, campaign_id: int, *, timeout_seconds: float | None = None) -> Iterator[None]:
        """Hold the campaign's lock for the duration of the block.

        Raises:
            CampaignBusyError: If the lock is not acquired within the timeout.
        """
        timeout = self.timeout_seconds if timeout_seconds is None else timeout_seconds
        lock = self._lock_for(campaign_id)
        if not lock.acquire(timeout=timeout):
            logger.warning("Campaign lock timed out", campaign_id=campaign_id, timeout=timeout)
            raise CampaignBusyError(
                "Another action is still in progress for this campaign",
                campaign_id=campaign_id,
                timeout_seconds=timeout,
            )
        try:
            yield
        finally:
            lock.release()

    def forget(self, campaign_id: int) -> None:
        """Drop the lock of a deleted campaign."""
        with self._guard:
            self._locks.pop(campaign_id, None)


__all__ = ["CampaignLockRegistry"]
