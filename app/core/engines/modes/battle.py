from __future__ import annotations
from typing import Any, Dict, List, Tuple
import random

from app.core.engines.base import ModePolicy, RoundState

OPPONENT_HP   = 100
HIT_DAMAGE    = 10
PLAYER_LIVES  = 3
BASE_REWARD   = 100
FLAWLESS_BONUS = 20

BOSS_LIST: List[Dict[str, str]] = [
    {"name": "The Exam Phantom", "title": "Phobia of Paper", "seed": "exam"},
    {"name": "Grammar Goblin", "title": "Sentence Mangler", "seed": "grammar"},
    {"name": "Procrastination Prince", "title": "The Time Thief", "seed": "clock"},
    {"name": "Vocabulary Void", "title": "The Word Swallower", "seed": "void"},
    {"name": "Deadline Dragon", "title": "The Final Countdown", "seed": "dragon"},
]


def pick_opponent(rng: random.Random) -> Dict[str, Any]:
    return dict(rng.choice(BOSS_LIST))


class BattlePolicy(ModePolicy):
    """The Boss Battle: 10 preguntas, 3 vidas. Sin vidas, o fallando la última, se pierde al instante."""
    slug = "battle"
    title = "The Boss Battle"
    content_kind = "questions"
    item_count = 10

    def setup(self, state: RoundState, rng: random.Random) -> None:
        state.opponent_hp = OPPONENT_HP
        state.lives = PLAYER_LIVES
        state.streak = 0
        state.flavor["opponent"] = pick_opponent(rng)

    def on_correct(self, state: RoundState) -> None:
        state.opponent_hp = max(0, state.opponent_hp - HIT_DAMAGE)
        state.streak += 1

    def on_incorrect(self, state: RoundState) -> None:
        state.streak = 0
        state.lives = max(0, state.lives - 1)
        # fallar la última pregunta también es perder la batalla
        if state.is_last_item:
            state.failed = True

    def is_terminal(self, state: RoundState) -> bool:
        return state.lives <= 0 or state.failed

    def compute_reward(self, state: RoundState) -> Tuple[int, bool]:
        if state.failed or state.lives <= 0:
            return 0, True
        bonus = FLAWLESS_BONUS if state.lives == PLAYER_LIVES else 0
        return BASE_REWARD + bonus, False

    def feedback_delay(self, correct: bool) -> float:
        return 1.2 if correct else 1.5
