"""
Headless test-taker - runs one full session against a live service.

Usage:
    python scripts/simulate_candidate.py --url http://localhost:3000 --answer-after 2
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to Python path (BEFORE importing assessment)
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from assessment.client.api import AssessmentClient
from assessment.client.reconciler import PendingAnswer, ReconciliationLoop


async def simulate(url: str, answer_after: float | None) -> None:
    print("=" * 60)
    print(f"🧪 Simulated candidate against {url}")
    print("=" * 60)

    async with AssessmentClient(base_url=url) as client:
        pending: set[asyncio.Task] = set()

        async def submit(answer: PendingAnswer) -> None:
            await client.submit_response(
                user_id=answer.user_id,
                section=answer.section_key,
                question_id=answer.question_id,
                response_type="text",
                response_data=f"simulated answer for {answer.question_id}",
                time_taken=answer.time_taken,
                auto_submitted=answer.auto_submitted,
            )

        def on_render(loop: ReconciliationLoop) -> None:
            timers = loop.view.render()
            print(
                f"📝 {loop.question_id:<6} total {timers['total']}  "
                f"section {timers['section']}  question {timers['question']}"
            )
            if answer_after is not None:
                question_id = loop.question_id

                async def press_next() -> None:
                    await asyncio.sleep(answer_after)
                    # The question may already have timed out
                    if loop.question_id == question_id:
                        await loop.force_next()

                task = asyncio.create_task(press_next())
                pending.add(task)
                task.add_done_callback(pending.discard)

        loop = await ReconciliationLoop.begin(
            client, before_advance=submit, on_render=on_render
        )
        await loop.run()

        for task in pending:
            task.cancel()

    print("=" * 60)
    if loop.completed:
        print(f"✅ Completed after {loop.advance_count} advance(s)")
    else:
        print("❌ Session ended early - restart required")
    print("=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--url", default="http://localhost:3000")
    parser.add_argument(
        "--answer-after",
        type=float,
        default=None,
        help="Press next this many seconds into each question (default: wait for timers)",
    )
    args = parser.parse_args()
    asyncio.run(simulate(args.url, args.answer_after))
