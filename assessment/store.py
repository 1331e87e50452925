"""
In-process session table.

Reads are lock-free snapshots; every write for a given session goes through
that session's lock.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from assessment.logger import setup_logger
from assessment.session import SessionRecord
from assessment.utils.exceptions import SessionNotFoundError

logger = setup_logger(__name__)


class SessionStore:
    """
    Session records keyed by id, with one exclusive lock per session.
    """

    def __init__(self) -> None:
        self._records: Dict[str, SessionRecord] = {}
        self._locks: Dict[str, threading.Lock] = {}
        # Guards the two dicts themselves, never held across a transition
        self._table_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._records

    def add(self, record: SessionRecord) -> None:
        with self._table_lock:
            if record.id in self._records:
                raise ValueError(f"session id already in use: {record.id}")
            self._records[record.id] = record
            self._locks[record.id] = threading.Lock()

    def get(self, session_id: Optional[str]) -> SessionRecord:
        """Snapshot of a record; may be one transition stale."""
        record = self._records.get(session_id) if session_id else None
        if record is None:
            raise SessionNotFoundError(session_id)
        return record

    @contextmanager
    def exclusive(self, session_id: Optional[str]) -> Iterator[SessionRecord]:
        """
        Hold the session's lock and yield its current record.

        Use :meth:`replace` inside the block to persist a new record.
        """
        lock = self._locks.get(session_id) if session_id else None
        if lock is None:
            raise SessionNotFoundError(session_id)
        with lock:
            # Re-read under the lock so the caller sees the latest write
            yield self.get(session_id)

    def replace(self, record: SessionRecord) -> None:
        """Persist a record. Caller must hold the record's lock."""
        with self._table_lock:
            if record.id not in self._records:
                raise SessionNotFoundError(record.id)
            self._records[record.id] = record

    def purge_expired(self, now: int, total_seconds: int, retention_seconds: int) -> int:
        """
        Drop sessions whose whole test window plus ``retention_seconds`` has passed.

        Returns:
            Number of sessions removed
        """
        cutoff = now - (total_seconds + retention_seconds) * 1000
        with self._table_lock:
            stale = [sid for sid, r in self._records.items() if r.test_started_at < cutoff]
            for sid in stale:
                del self._records[sid]
                del self._locks[sid]
        if stale:
            logger.info(f"🧹 Purged {len(stale)} expired session(s)")
        return len(stale)
