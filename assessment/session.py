"""
Session record and the progression state machine.

States are ``(section_index, question_index, completed)``. The only
transitions are next question, next section, and completion.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from assessment.catalog import Catalog
from assessment.utils.exceptions import InvalidStateError


class Transition(str, Enum):
    NEXT_QUESTION = "next_question"
    NEXT_SECTION = "next_section"
    COMPLETED = "completed"


@dataclass(frozen=True)
class SessionRecord:
    """
    Authoritative per-test-taker state. Timestamps are epoch milliseconds.
    """

    id: str
    test_started_at: int
    section_index: int = 0
    section_started_at: int = 0
    question_index: int = 0
    completed: bool = False

    @classmethod
    def new(cls, now: int, session_id: Optional[str] = None) -> "SessionRecord":
        return cls(
            id=session_id or str(uuid.uuid4()),
            test_started_at=now,
            section_started_at=now,
        )

    @property
    def position(self) -> Tuple[int, int, bool]:
        return (self.section_index, self.question_index, self.completed)

    def section_key(self, catalog: Catalog) -> str:
        return catalog.section_at(self.section_index).key

    def question_id(self, catalog: Catalog) -> str:
        """Display id of the current question, e.g. "B-3"."""
        return f"{self.section_key(catalog)}-{self.question_index + 1}"

    def to_start_dict(self, catalog: Catalog) -> Dict[str, Any]:
        """Body of POST /api/start."""
        return {
            "userId": self.id,
            "startedAt": self.test_started_at,
            "sectionKey": self.section_key(catalog),
            "sectionStartedAt": self.section_started_at,
            "questionIndex": self.question_index,
        }

    def to_advance_dict(self, catalog: Catalog) -> Dict[str, Any]:
        """Body of POST /api/advance."""
        return {
            "sectionKey": self.section_key(catalog),
            "sectionStartedAt": self.section_started_at,
            "questionIndex": self.question_index,
            "completed": self.completed,
        }


def next_transition(session: SessionRecord, catalog: Catalog) -> Transition:
    """Which transition :func:`advance` would apply."""
    if session.completed:
        raise InvalidStateError(session.id)

    section = catalog.section_at(session.section_index)
    if session.question_index + 1 < section.question_count:
        return Transition.NEXT_QUESTION
    if session.section_index + 1 < len(catalog):
        return Transition.NEXT_SECTION
    return Transition.COMPLETED


def advance(session: SessionRecord, catalog: Catalog, now: int) -> SessionRecord:
    """
    Compute the session state after one advance.

    Args:
        session: Current record (not modified)
        catalog: Section catalog the record indexes into
        now: Transition time in epoch milliseconds, captured once by the caller

    Returns:
        The next record

    Raises:
        InvalidStateError: If the session has already completed
    """
    transition = next_transition(session, catalog)

    if transition is Transition.NEXT_QUESTION:
        return replace(session, question_index=session.question_index + 1)

    if transition is Transition.NEXT_SECTION:
        # A clock that stepped backwards must not move the anchor backwards
        started = max(now, session.section_started_at)
        return replace(
            session,
            section_index=session.section_index + 1,
            question_index=0,
            section_started_at=started,
        )

    return replace(session, completed=True)
