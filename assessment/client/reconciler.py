"""
Client-side timer reconciliation.

Two cooperative ticks run on one event loop: a status poll that overwrites
the displayed section/total countdowns with the server's values, and a local
question countdown. Both funnel into :meth:`ReconciliationLoop.auto_advance`,
which lets exactly one advance through per rendered question.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from assessment.catalog import Catalog
from assessment.client.api import AssessmentClient
from assessment.config import settings
from assessment.logger import setup_logger
from assessment.timer import QuestionTimer
from assessment.utils.exceptions import (
    InvalidStateError,
    SessionNotFoundError,
    TransientIOError,
)
from assessment.utils.helpers import format_time, now_ms

logger = setup_logger(__name__)


@dataclass
class PendingAnswer:
    """What the capture hook needs to submit the final answer of a question."""

    user_id: str
    section_key: str
    question_id: str
    time_taken: int
    auto_submitted: bool


BeforeAdvance = Callable[[PendingAnswer], Awaitable[None]]
OnRender = Callable[["ReconciliationLoop"], Any]


@dataclass
class TimerView:
    """Locally displayed countdowns. Never the source of truth."""

    total_remaining: int = 0
    section_remaining: int = 0
    question_remaining: int = 0

    def apply_status(self, status: Dict[str, Any]) -> None:
        self.total_remaining = max(int(status["totalRemaining"]), 0)
        self.section_remaining = max(int(status["sectionRemaining"]), 0)

    def tick(self) -> None:
        """Local decrement between polls."""
        self.total_remaining = max(self.total_remaining - 1, 0)
        self.section_remaining = max(self.section_remaining - 1, 0)

    def render(self) -> Dict[str, str]:
        return {
            "total": format_time(self.total_remaining),
            "section": format_time(self.section_remaining),
            "question": format_time(self.question_remaining),
        }


class ReconciliationLoop:
    """
    Keeps one test-taker's display in step with the server and advances on expiry.
    """

    def __init__(
        self,
        client: AssessmentClient,
        catalog: Catalog,
        start: Dict[str, Any],
        before_advance: Optional[BeforeAdvance] = None,
        on_render: Optional[OnRender] = None,
        interval: Optional[float] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """
        Args:
            client: Service client
            catalog: Catalog fetched from GET /api/config
            start: Body returned by POST /api/start
            before_advance: Capture hook run before each advance
            on_render: Called after every (re)render of a question
            interval: Tick cadence in seconds
            clock: Epoch-ms clock used for time-taken bookkeeping
        """
        self.client = client
        self.catalog = catalog
        self.user_id: str = start["userId"]
        self.section_key: str = start["sectionKey"]
        self.question_index: int = start["questionIndex"]
        self.before_advance = before_advance
        self.on_render = on_render
        self.interval = interval if interval is not None else settings.poll_interval_seconds
        self.clock = clock

        self.view = TimerView()
        self.question_timer = QuestionTimer()
        self.question_started_at = 0
        self.completed = False
        self.needs_restart = False
        self.advance_count = 0

        self._advancing = False
        self._retry_auto_submitted: Optional[bool] = None
        # Bumped on every render, lets a poll detect it raced an advance
        self._generation = 0

    @classmethod
    async def begin(cls, client: AssessmentClient, **kwargs: Any) -> "ReconciliationLoop":
        """Fetch the catalog, start a session and render its first question."""
        catalog = Catalog.from_public_dict(await client.fetch_config())
        start = await client.start()
        logger.info(f"🚀 Session {start['userId']} started")
        loop = cls(client, catalog, start, **kwargs)
        loop.render_question()
        return loop

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def finished(self) -> bool:
        return self.completed or self.needs_restart

    @property
    def question_id(self) -> str:
        return f"{self.section_key}-{self.question_index + 1}"

    def render_question(self) -> None:
        """Seed the question countdown for the current position and re-arm advancing."""
        section = self.catalog.section(self.section_key)
        self.question_timer.start(section.question_seconds)
        self.view.question_remaining = self.question_timer.time_remaining()
        self.question_started_at = self.clock()
        self._generation += 1
        self._advancing = False
        self._retry_auto_submitted = None
        logger.debug(f"📝 Rendering {self.question_id} ({section.question_seconds}s)")
        if self.on_render is not None:
            self.on_render(self)

    def _adopt(self, data: Dict[str, Any]) -> None:
        self.section_key = data["sectionKey"]
        self.question_index = data["questionIndex"]

    def _stop(self, reason: str) -> None:
        self.question_timer.stop()
        logger.info(f"🛑 Session {self.user_id}: {reason}")

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------
    async def reconcile_once(self) -> None:
        """One poll: overwrite the display and advance if a server deadline passed."""
        if self.finished:
            return

        generation = self._generation
        try:
            status = await self.client.status(self.user_id)
        except TransientIOError as e:
            # Keep counting down locally, the next poll corrects any drift
            logger.debug(f"Status poll failed, retrying next tick: {e}")
            self.view.tick()
            return
        except SessionNotFoundError:
            self.needs_restart = True
            self._stop("session unknown to the server, restart required")
            return

        self.view.apply_status(status)

        if status["completed"]:
            self.completed = True
            self._stop("completed")
            return

        if self._advancing or generation != self._generation:
            # Stale: the position changed while this poll was in flight
            return

        if (status["sectionKey"], status["questionIndex"]) != (
            self.section_key,
            self.question_index,
        ):
            # An advance whose response was lost did reach the server
            logger.info(f"🔄 Resyncing position to {status['sectionKey']}-{status['questionIndex'] + 1}")
            self._adopt(status)
            self.render_question()
            return

        if self._retry_auto_submitted is not None:
            await self.auto_advance(self._retry_auto_submitted)
        elif status["totalRemaining"] <= 0 or status["sectionRemaining"] <= 0:
            await self.auto_advance(True)

    async def tick_question(self) -> None:
        """One local second of the question countdown."""
        if self.finished or self._advancing:
            return
        self.view.question_remaining = self.question_timer.tick()
        if self.question_timer.should_force_submit():
            await self.auto_advance(True)

    # ------------------------------------------------------------------
    # Advancing
    # ------------------------------------------------------------------
    async def auto_advance(self, auto_submitted: bool = True) -> bool:
        """
        The single entry point for leaving a question.

        Returns:
            True if this call performed the advance, False if another call
            already owns it or the session is finished.
        """
        if self.finished or self._advancing:
            return False
        # No await between the check and the set: one caller wins
        self._advancing = True
        self.question_timer.stop()

        if self.before_advance is not None:
            answer = PendingAnswer(
                user_id=self.user_id,
                section_key=self.section_key,
                question_id=self.question_id,
                time_taken=self.clock() - self.question_started_at,
                auto_submitted=auto_submitted,
            )
            try:
                await self.before_advance(answer)
            except TransientIOError as e:
                logger.warning(f"⚠️ Answer for {answer.question_id} not stored: {e}")
            except Exception as e:
                logger.error(f"❌ Answer capture for {answer.question_id} failed: {e}")

        try:
            data = await self.client.advance(self.user_id)
        except TransientIOError as e:
            logger.warning(f"⚠️ Advance failed, retrying on next poll: {e}")
            self._retry_auto_submitted = auto_submitted
            self._advancing = False
            return False
        except (SessionNotFoundError, InvalidStateError) as e:
            self.needs_restart = True
            self._stop(f"advance rejected ({e}), restart required")
            return False
        except Exception as e:
            logger.error(f"❌ Advance error, retrying on next poll: {e}")
            self._retry_auto_submitted = auto_submitted
            self._advancing = False
            return False

        self.advance_count += 1
        if data["completed"]:
            self.completed = True
            self._stop("completed")
            return True

        self._adopt(data)
        self.render_question()
        return True

    async def force_next(self) -> bool:
        """Manual "next" from the test-taker."""
        return await self.auto_advance(auto_submitted=False)

    # ------------------------------------------------------------------
    # Scheduler
    # ------------------------------------------------------------------
    async def _poll_loop(self) -> None:
        while not self.finished:
            await self.reconcile_once()
            await asyncio.sleep(self.interval)

    async def _question_loop(self) -> None:
        while not self.finished:
            await asyncio.sleep(self.interval)
            await self.tick_question()

    async def run(self) -> None:
        """Drive both ticks until the session completes or needs a restart."""
        await asyncio.gather(self._poll_loop(), self._question_loop())
        if self.needs_restart:
            logger.warning(f"⚠️ Session {self.user_id} ended early; please restart the assessment")
        else:
            logger.info(f"🏁 Session {self.user_id} finished after {self.advance_count} advance(s)")
