from __future__ import annotations

from app.core import settings_games
from app.core.engines.base import Phase


def test_all_correct_unlocks_every_door(harness) -> None:
    h = harness("escape")
    assert len(h.state.items) == 7

    for i in range(7):
        assert h.state.current_index == i
        assert h.answer("right")

    assert h.outcomes.events == [("complete", 120, False)]
    assert h.state.phase == Phase.terminated
    assert h.scheduler.active() == []


def test_one_wrong_answer_costs_bonus_and_time(harness) -> None:
    h = harness("escape")
    for _ in range(3):
        h.answer("right")

    h.answer("wrong a")
    # la puerta sigue cerrada
    assert h.state.current_index == 3
    assert h.state.time_remaining == 600 - 15
    assert h.state.wrong_count == 1

    for _ in range(4):
        h.answer("right")

    assert h.outcomes.events == [("complete", 100, True)]


def test_answer_by_option_index(harness) -> None:
    h = harness("escape")
    h.answer(0)
    assert h.state.current_index == 1
    h.answer(3)
    assert h.state.current_index == 1
    assert h.state.wrong_count == 1


def test_clock_runs_out(harness) -> None:
    h = harness("escape")
    seen = []
    for _ in range(600):
        h.scheduler.advance(1.0)
        seen.append(h.state.time_remaining)

    assert seen == sorted(seen, reverse=True)
    assert h.outcomes.events == [("complete", 0, True)]
    assert h.scheduler.active() == []


def test_clock_is_never_reset_between_doors(harness) -> None:
    h = harness("escape")
    h.scheduler.advance(5.0)
    h.answer("right")
    h.scheduler.advance(5.0)
    assert h.state.time_remaining == 590


def test_penalty_that_empties_the_clock_ends_the_round(harness) -> None:
    h = harness("escape")
    h.state.time_remaining = 10
    h.answer("wrong b")

    assert h.state.time_remaining == 0
    assert h.outcomes.events == [("complete", 0, True)]


def test_clock_keeps_running_during_feedback(harness, monkeypatch) -> None:
    monkeypatch.setattr(settings_games, "FEEDBACK_DELAY_SCALE", 1.0)
    h = harness("escape")
    h.state.time_remaining = 1.0

    assert h.engine.submit("right")
    assert h.scheduler.delays[-1] == 1.2
    assert h.state.phase == Phase.feedback

    h.scheduler.advance(1.0)
    assert h.outcomes.events == [("complete", 0, True)]
    assert h.scheduler.active() == []


def test_feedback_delays_follow_the_answer(harness, monkeypatch) -> None:
    monkeypatch.setattr(settings_games, "FEEDBACK_DELAY_SCALE", 1.0)
    h = harness("escape")
    h.engine.submit("wrong a")
    assert h.scheduler.delays[-1] == 1.5
