"""
Deadline calculator and the client-side question countdown.

Section and total deadlines are derived from the session's anchor timestamps
and wall-clock ``now`` (epoch ms), so a slow or suspended client corrects
itself on the next poll. Question deadlines are only tracked by the client.
"""

from assessment.catalog import Catalog
from assessment.logger import setup_logger
from assessment.session import SessionRecord

logger = setup_logger(__name__)


def _elapsed_seconds(started_at: int, now: int) -> int:
    return (now - started_at) // 1000


def remaining_seconds(budget_seconds: int, started_at: int, now: int) -> int:
    """Whole seconds left of ``budget_seconds`` since ``started_at``, never negative."""
    return max(budget_seconds - _elapsed_seconds(started_at, now), 0)


def total_remaining(session: SessionRecord, catalog: Catalog, now: int) -> int:
    """Seconds left in the whole test."""
    return remaining_seconds(catalog.total_seconds, session.test_started_at, now)


def section_remaining(session: SessionRecord, catalog: Catalog, now: int) -> int:
    """Seconds left in the current section."""
    section = catalog.section_at(session.section_index)
    return remaining_seconds(section.section_seconds, session.section_started_at, now)


class QuestionTimer:
    """
    Locally ticking per-question countdown.

    Seeded from the section's per-question budget when a question is
    rendered and decremented once per tick; never reconciled with the server.
    """

    def __init__(self, timeout: int = 0) -> None:
        """
        Args:
            timeout: Per-question budget in seconds.
        """
        self.timeout = timeout
        self.remaining = timeout
        self.running = False

    def start(self, timeout: int | None = None) -> None:
        """(Re)seed the countdown for a newly rendered question."""
        if timeout is not None:
            self.timeout = timeout
        self.remaining = self.timeout
        self.running = True
        logger.debug(f"⏱️  Question timer started ({self.timeout}s)")

    def stop(self) -> None:
        self.running = False

    def tick(self, seconds: int = 1) -> int:
        """Count down by ``seconds``; returns the clamped remaining value."""
        if self.running:
            self.remaining = max(self.remaining - seconds, 0)
        return self.remaining

    def elapsed(self) -> int:
        """Seconds spent on the current question."""
        return self.timeout - self.remaining

    def time_remaining(self) -> int:
        return self.remaining

    def should_force_submit(self) -> bool:
        """Check if the question budget has run out."""
        return self.running and self.remaining <= 0
