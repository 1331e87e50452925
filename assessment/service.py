"""
Session service: the only place session records are created or advanced.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from assessment.catalog import Catalog
from assessment.logger import setup_logger
from assessment.session import SessionRecord, Transition, advance, next_transition
from assessment.store import SessionStore
from assessment.timer import section_remaining, total_remaining
from assessment.utils.helpers import now_ms

logger = setup_logger(__name__)


class SessionService:
    """
    Creates sessions, reports their deadlines and applies advance requests.

    Args:
        store: Session table
        catalog: Section catalog shared by all sessions
        clock: Returns "now" in epoch milliseconds
        retention_seconds: How long finished or abandoned sessions are kept
            after their test window closes
    """

    def __init__(
        self,
        store: SessionStore,
        catalog: Catalog,
        clock: Callable[[], int] = now_ms,
        retention_seconds: Optional[int] = None,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.clock = clock
        self.retention_seconds = retention_seconds

    def create_session(self) -> SessionRecord:
        now = self.clock()
        if self.retention_seconds is not None:
            self.store.purge_expired(now, self.catalog.total_seconds, self.retention_seconds)

        record = SessionRecord.new(now)
        self.store.add(record)
        logger.info(f"🆕 Session {record.id} started")
        return record

    def get_status(self, session_id: Optional[str]) -> Dict[str, Any]:
        """
        Current position and server-enforced remaining time.

        Raises:
            SessionNotFoundError: If the id is unknown
        """
        now = self.clock()
        record = self.store.get(session_id)
        return {
            "now": now,
            "sectionKey": record.section_key(self.catalog),
            "sectionIndex": record.section_index,
            "sectionRemaining": section_remaining(record, self.catalog, now),
            "totalRemaining": total_remaining(record, self.catalog, now),
            "sectionStartedAt": record.section_started_at,
            "questionIndex": record.question_index,
            "completed": record.completed,
        }

    def advance_session(self, session_id: Optional[str]) -> SessionRecord:
        """
        Apply exactly one transition to the session.

        Raises:
            SessionNotFoundError: If the id is unknown
            InvalidStateError: If the session has already completed
        """
        with self.store.exclusive(session_id) as record:
            now = self.clock()
            transition = next_transition(record, self.catalog)
            updated = advance(record, self.catalog, now)
            self.store.replace(updated)

        if transition is Transition.COMPLETED:
            logger.info(f"🏁 Session {updated.id} completed")
        else:
            logger.info(
                f"➡️  Session {updated.id} {transition.value}: "
                f"{updated.question_id(self.catalog)}"
            )
        return updated
