from __future__ import annotations

import asyncio
import logging

import pytest

from app.core.engines import supplier as supplier_module
from app.core.engines.base import Phase
from app.core.engines.clock import AsyncioScheduler
from app.core.engines.registry import available_modes, get_policy_for_mode
from app.core.engines.round import RoundEngine
from app.schemas.game import Grade, Subject

from conftest import FakeScheduler, FakeSupplier, Outcomes, make_questions


@pytest.mark.parametrize("mode", ["escape", "battle", "sprint"])
def test_completion_fires_once(harness, mode) -> None:
    h = harness(mode)
    while not h.engine.closed:
        h.answer("right")

    assert len(h.outcomes.events) == 1
    assert h.outcomes.events[0][0] == "complete"
    assert not h.engine.cancel()
    assert not h.answer("right")
    assert len(h.outcomes.events) == 1


@pytest.mark.parametrize("mode", ["escape", "battle", "sprint"])
def test_cancel_is_final(harness, mode) -> None:
    h = harness(mode)
    h.answer("right")

    assert h.engine.cancel()
    assert h.state.phase == Phase.cancelled
    assert h.scheduler.active() == []
    assert not h.engine.cancel()
    assert not h.answer("right")
    h.scheduler.advance(60)
    assert h.outcomes.events == [("cancel",)]


def test_cancel_during_feedback_drops_pending_advance(harness) -> None:
    h = harness("battle")
    h.engine.submit("right")
    assert h.state.phase == Phase.feedback

    h.engine.cancel()
    h.scheduler.advance(5)
    assert h.state.current_index == 0
    assert h.outcomes.events == [("cancel",)]


def test_second_submission_for_same_item_is_ignored(harness) -> None:
    h = harness("escape")
    assert h.engine.submit("wrong a")
    assert not h.engine.submit("wrong a")
    assert not h.engine.submit("right")

    assert h.state.answered == 1
    assert h.state.wrong_count == 1
    assert h.state.time_remaining == 585


def test_submission_before_content_is_ignored(harness) -> None:
    h = harness("battle", start=False)
    assert h.state.phase == Phase.loading
    assert not h.engine.submit("right")


def test_supplier_failure_falls_back_to_local_bank(harness, caplog) -> None:
    caplog.set_level(logging.WARNING)
    h = harness("battle", FakeSupplier(error=RuntimeError("quota exceeded")))

    assert h.state.phase == Phase.active
    assert h.state.error is None
    assert [q.id for q in h.state.items[:4]] == ["e1", "e2", "e1-r1", "e2-r1"]
    assert len(h.state.items) == 10
    warnings = [r for r in caplog.records if r.levelno >= logging.WARNING]
    assert len(warnings) == 1


def test_missing_content_offers_retry(harness, monkeypatch) -> None:
    monkeypatch.setattr(supplier_module, "fallback_questions", lambda subject, count: [])
    supplier = FakeSupplier(error=RuntimeError("offline"))
    h = harness("escape", supplier)

    assert h.state.phase == Phase.error
    assert h.state.error
    assert h.outcomes.events == []

    # sigue fallando: se queda en error
    asyncio.run(h.engine.retry())
    assert h.state.phase == Phase.error
    assert supplier.calls == 2

    supplier.error = None
    supplier.questions = make_questions(7)
    asyncio.run(h.engine.retry())
    assert h.state.phase == Phase.active
    assert h.state.error is None
    assert len(h.state.items) == 7


def test_cancel_from_error_state(harness, monkeypatch) -> None:
    monkeypatch.setattr(supplier_module, "fallback_questions", lambda subject, count: [])
    h = harness("sprint", FakeSupplier(questions=[]))
    assert h.state.phase == Phase.error
    assert h.engine.cancel()
    assert h.outcomes.events == [("cancel",)]


def test_cancel_while_loading_discards_late_content() -> None:
    gate = asyncio.Event()

    class SlowSupplier(FakeSupplier):
        async def fetch_questions(self, subject, grade, count):
            await gate.wait()
            return make_questions(count)

    outcomes = Outcomes()
    engine = RoundEngine(
        get_policy_for_mode("battle"), Subject.french, Grade.grade_7,
        supplier=SlowSupplier(), scheduler=FakeScheduler(),
        on_complete=outcomes.complete, on_cancel=outcomes.cancel,
    )

    async def scenario():
        task = asyncio.create_task(engine.start())
        await asyncio.sleep(0)
        assert engine.state.phase == Phase.loading
        engine.cancel()
        gate.set()
        await task

    asyncio.run(scenario())
    assert engine.state.phase == Phase.cancelled
    assert engine.state.items == []
    assert outcomes.events == [("cancel",)]


def test_state_carries_subject_and_grade(harness) -> None:
    h = harness("battle", subject=Subject.hindi, grade=Grade.grade_8)
    assert h.state.subject == "Hindi"
    assert h.state.grade == "8"
    assert h.state.mode == "battle"


def test_mode_aliases() -> None:
    assert get_policy_for_mode("Escape the Chapter").slug == "escape"
    assert get_policy_for_mode("The Boss Battle").slug == "battle"
    assert get_policy_for_mode("interactive-story").slug == "story"
    assert get_policy_for_mode("Recall Sprint").slug == "sprint"
    with pytest.raises(ValueError):
        get_policy_for_mode("chess")


def test_available_modes() -> None:
    modes = {m["slug"]: m for m in available_modes()}
    assert set(modes) == {"escape", "battle", "story", "sprint"}
    assert modes["escape"]["items"] == 7
    assert modes["story"]["content"] == "story"


def test_asyncio_scheduler_repeats_until_cancelled() -> None:
    async def scenario():
        sched = AsyncioScheduler()
        ticks = []
        handle = sched.call_every(0.01, lambda: ticks.append(1))
        await asyncio.sleep(0.055)
        handle.cancel()
        count = len(ticks)
        await asyncio.sleep(0.03)
        return count, len(ticks)

    count, after = asyncio.run(scenario())
    assert count >= 2
    assert after == count


def test_second_start_while_loading_is_ignored() -> None:
    gate = asyncio.Event()

    class SlowSupplier(FakeSupplier):
        async def fetch_questions(self, subject, grade, count):
            self.calls += 1
            await gate.wait()
            return make_questions(count)

    supplier = SlowSupplier()
    outcomes = Outcomes()
    engine = RoundEngine(
        get_policy_for_mode("escape"), Subject.english, Grade.grade_6,
        supplier=supplier, scheduler=FakeScheduler(),
        on_complete=outcomes.complete, on_cancel=outcomes.cancel,
    )

    async def scenario():
        first = asyncio.create_task(engine.start())
        await asyncio.sleep(0)
        await engine.start()
        await engine.retry()
        gate.set()
        await first

    asyncio.run(scenario())
    assert supplier.calls == 1
    assert engine.state.phase == Phase.active
    assert len(engine.state.items) == 7
