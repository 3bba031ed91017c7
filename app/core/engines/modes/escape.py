from __future__ import annotations
from typing import Tuple
import random

from app.core.engines.base import EXPIRY_FAIL, ModePolicy, RoundState

TIME_BUDGET   = 600   # reloj global de la ronda, no se reinicia por puerta
WRONG_PENALTY = 15
BASE_REWARD   = 100
CLEAN_BONUS   = 20


class EscapePolicy(ModePolicy):
    """
    Escape the Chapter: 7 puertas en orden. Una puerta sólo se abre con la respuesta
    correcta; cada error descuenta tiempo del reloj global. Si el reloj llega a 0 se pierde.
    """
    slug = "escape"
    title = "Escape the Chapter"
    content_kind = "questions"
    item_count = 7
    tick_interval = 1.0
    ticks_in_feedback = True   # el reloj es global: sigue corriendo durante el feedback

    def setup(self, state: RoundState, rng: random.Random) -> None:
        state.time_budget = TIME_BUDGET
        state.time_remaining = TIME_BUDGET
        state.wrong_count = 0

    def on_correct(self, state: RoundState) -> None:
        return None

    def on_incorrect(self, state: RoundState) -> None:
        state.wrong_count += 1
        state.time_remaining = max(0, state.time_remaining - WRONG_PENALTY)

    def on_tick(self, state: RoundState, dt: float) -> bool:
        state.time_remaining = max(0, state.time_remaining - dt)
        return state.time_remaining <= 0

    def on_expired(self, state: RoundState) -> str:
        return EXPIRY_FAIL

    def should_advance(self, state: RoundState, correct: bool) -> bool:
        # la puerta queda cerrada hasta acertar
        return correct

    def is_terminal(self, state: RoundState) -> bool:
        return state.time_remaining <= 0

    def compute_reward(self, state: RoundState) -> Tuple[int, bool]:
        if state.failed or state.time_remaining <= 0:
            return 0, True
        bonus = CLEAN_BONUS if state.wrong_count == 0 else 0
        return BASE_REWARD + bonus, state.wrong_count > 0

    def feedback_delay(self, correct: bool) -> float:
        return 1.2 if correct else 1.5
