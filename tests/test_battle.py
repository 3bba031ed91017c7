from __future__ import annotations

from app.core.engines.base import Phase
from app.core.engines.modes.battle import BOSS_LIST


def test_flawless_run(harness) -> None:
    h = harness("battle")
    assert len(h.state.items) == 10

    for _ in range(10):
        h.answer("right")

    assert h.state.lives == 3
    assert h.state.opponent_hp == 0
    assert h.state.streak == 10
    assert h.outcomes.events == [("complete", 120, False)]


def test_three_misses_end_the_battle_early(harness) -> None:
    h = harness("battle")
    lives = [h.state.lives]
    for _ in range(3):
        h.answer("wrong a")
        lives.append(h.state.lives)

    assert lives == [3, 2, 1, 0]
    assert h.state.current_index == 2
    assert h.state.phase == Phase.terminated
    assert h.outcomes.events == [("complete", 0, True)]
    assert h.scheduler.active() == []


def test_win_with_lives_lost_has_no_bonus(harness) -> None:
    h = harness("battle")
    h.answer("wrong a")
    h.answer("wrong b")
    for _ in range(8):
        h.answer("right")

    assert h.state.lives == 1
    assert h.state.opponent_hp == 20
    assert h.outcomes.events == [("complete", 100, False)]


def test_wrong_answer_breaks_the_streak(harness) -> None:
    h = harness("battle")
    h.answer("right")
    h.answer("right")
    h.answer("wrong c")
    assert h.state.streak == 0
    assert h.state.opponent_hp == 80


def test_opponent_depends_only_on_seed(harness) -> None:
    a = harness("battle", seed=3, start=False)
    b = harness("battle", seed=3, start=False)
    assert a.state.flavor["opponent"] == b.state.flavor["opponent"]
    assert a.state.flavor["opponent"] in BOSS_LIST


def test_missing_the_last_question_loses_the_battle(harness) -> None:
    h = harness("battle")
    for _ in range(9):
        h.answer("right")
    h.answer("wrong a")

    assert h.state.lives == 2
    assert h.state.phase == Phase.terminated
    assert h.outcomes.events == [("complete", 0, True)]
    assert h.scheduler.active() == []
