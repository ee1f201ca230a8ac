"""
Duplicate Classifier.

Checks a submission against the worker's window, strictly in order,
first match wins:

1. fingerprint seen in the last 24h        → duplicate (file_id)
2. exact duration seen in the last 24h     → duplicate (duration)
3. 3 timestamps already in the recent list → duplicate (too_many_videos)
4. otherwise novel: commit all three facets in one transaction

A duplicate verdict writes nothing, so rejected content never extends
a TTL. A novel verdict writes exactly once. If that commit fails, or the
submission cannot be recorded afterwards, forget() removes its facets so
a resubmission is judged afresh.
"""

import logging
from datetime import datetime
from typing import List

from .deadline import Deadline, bounded
from .errors import WindowStoreError, WindowStoreTimeout
from .types import Classification, DuplicateReason
from .window import DeleteKey, Expire, Mutation, PushFront, RemoveOne, SetKey, Trim, WindowStore

logger = logging.getLogger(__name__)

FINGERPRINT_TTL_SECONDS = 24 * 3600
DURATION_TTL_SECONDS = 24 * 3600
RECENT_TTL_SECONDS = 3600
RECENT_MAX_LEN = 3


def fingerprint_key(worker_id: str, fingerprint: str) -> str:
    return f"user:{worker_id}:file:{fingerprint}"


def duration_key(worker_id: str, duration: int) -> str:
    # Exact-match bucket: no +/- tolerance
    return f"user:{worker_id}:duration:{duration}"


def recent_key(worker_id: str) -> str:
    return f"user:{worker_id}:recent"


def _timestamp_ms(received_at: datetime) -> str:
    return str(int(received_at.timestamp() * 1000))


class DuplicateClassifier:
    """
    Classifies submissions against the ephemeral window.

    Args:
        store: Window backend (shared across all workers; keys are namespaced)
        call_timeout: Cap in seconds for each store call
    """

    def __init__(self, store: WindowStore, call_timeout: float = 5.0):
        self.store = store
        self.call_timeout = call_timeout

    async def classify(
        self,
        worker_id: str,
        fingerprint: str,
        duration: int,
        received_at: datetime,
        deadline: Deadline,
    ) -> Classification:
        file_key = fingerprint_key(worker_id, fingerprint)
        if await self._call(self.store.exists(file_key), deadline, "exists(fingerprint)"):
            return Classification.duplicate(DuplicateReason.FILE_ID)

        dur_key = duration_key(worker_id, duration)
        if await self._call(self.store.get(dur_key), deadline, "get(duration)") is not None:
            return Classification.duplicate(DuplicateReason.DURATION)

        list_key = recent_key(worker_id)
        recent_count = await self._call(
            self.store.list_length(list_key), deadline, "list_length(recent)"
        )
        if recent_count >= RECENT_MAX_LEN:
            return Classification.duplicate(DuplicateReason.TOO_MANY_VIDEOS)

        writes = self._window_writes(worker_id, fingerprint, duration, received_at)
        try:
            await self._call(self.store.commit(writes), deadline, "commit(window)")
        except WindowStoreError:
            # A timed-out EXEC may still land; clear whatever made it in
            await self._undo(worker_id, fingerprint, duration, received_at)
            raise
        logger.debug(f"Window recorded for worker {worker_id} ({recent_count + 1} recent)")
        return Classification.novel()

    async def forget(
        self,
        worker_id: str,
        fingerprint: str,
        duration: int,
        received_at: datetime,
        deadline: Deadline,
    ) -> None:
        """
        Remove the window facets written for a novel submission.

        Only valid for a submission this classifier reported as novel: both
        keys were absent before its commit, so deleting them restores the
        prior state. The recent-list TTL refresh is not undone.
        """
        await self._call(
            self.store.commit(self._window_removals(worker_id, fingerprint, duration, received_at)),
            deadline,
            "commit(forget)",
        )
        logger.info(f"Window cleared for worker {worker_id} fingerprint {fingerprint}")

    async def _undo(self, worker_id, fingerprint, duration, received_at):
        try:
            await self.forget(
                worker_id, fingerprint, duration, received_at, Deadline(self.call_timeout)
            )
        except WindowStoreError as e:
            logger.error(f"Window rollback for worker {worker_id} failed: {e}")

    def _window_writes(
        self,
        worker_id: str,
        fingerprint: str,
        duration: int,
        received_at: datetime,
    ) -> List[Mutation]:
        list_key = recent_key(worker_id)
        timestamp_ms = _timestamp_ms(received_at)
        return [
            SetKey(fingerprint_key(worker_id, fingerprint), "1", FINGERPRINT_TTL_SECONDS),
            SetKey(duration_key(worker_id, duration), "1", DURATION_TTL_SECONDS),
            PushFront(list_key, timestamp_ms),
            Trim(list_key, RECENT_MAX_LEN),
            Expire(list_key, RECENT_TTL_SECONDS),
        ]

    def _window_removals(
        self,
        worker_id: str,
        fingerprint: str,
        duration: int,
        received_at: datetime,
    ) -> List[Mutation]:
        return [
            DeleteKey(fingerprint_key(worker_id, fingerprint)),
            DeleteKey(duration_key(worker_id, duration)),
            RemoveOne(recent_key(worker_id), _timestamp_ms(received_at)),
        ]

    async def _call(self, awaitable, deadline: Deadline, what: str):
        return await bounded(
            awaitable,
            deadline,
            WindowStoreTimeout,
            f"window store {what}",
            cap=self.call_timeout,
        )
