from __future__ import annotations
from typing import Tuple
import random

from app.core.engines.base import EXPIRY_SUBMIT, ModePolicy, RoundState

BASE_BUDGET  = 10.0
BUDGET_STEP  = 1.5
MIN_BUDGET   = 3.0
STREAK_EVERY = 3
STREAK_GOAL  = 10
REWARD       = 100


class SprintPolicy(ModePolicy):
    """
    Flash-Recall Sprint: 15 preguntas, cada una con su propia cuenta regresiva.
    Cada 3 aciertos seguidos el tiempo por pregunta baja 1.5 s (mínimo 3 s);
    un error o un timeout lo devuelve a 10 s.
    """
    slug = "sprint"
    title = "Recall Sprint"
    content_kind = "questions"
    item_count = 15
    tick_interval = 0.1

    def setup(self, state: RoundState, rng: random.Random) -> None:
        state.streak = 0
        state.time_budget = BASE_BUDGET
        state.time_remaining = BASE_BUDGET

    def on_item_shown(self, state: RoundState) -> None:
        state.time_remaining = state.time_budget

    def on_correct(self, state: RoundState) -> None:
        state.streak += 1
        if state.streak % STREAK_EVERY == 0:
            state.time_budget = max(MIN_BUDGET, state.time_budget - BUDGET_STEP)

    def on_incorrect(self, state: RoundState) -> None:
        state.streak = 0
        state.time_budget = BASE_BUDGET

    def on_tick(self, state: RoundState, dt: float) -> bool:
        # redondeo para que 100 ticks de 0.1 sumen exactamente 10
        state.time_remaining = max(0.0, round(state.time_remaining - dt, 3))
        return state.time_remaining <= 0

    def on_expired(self, state: RoundState) -> str:
        return EXPIRY_SUBMIT

    def compute_reward(self, state: RoundState) -> Tuple[int, bool]:
        return REWARD, state.streak < STREAK_GOAL

    def feedback_delay(self, correct: bool) -> float:
        return 0.8
