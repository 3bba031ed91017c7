from __future__ import annotations
from typing import Tuple
import random

from app.core.engines.base import ModePolicy, RoundState

BASELINE_POINTS = 100
WRONG_CHOICE_PENALTY = 20


class StoryPolicy(ModePolicy):
    """
    Interactive Story: se recorre un grafo de nodos. Una decisión incorrecta cuesta puntos
    pero no bloquea; la historia termina cuando el siguiente nodo no existe.
    """
    slug = "story"
    title = "Interactive Story"
    content_kind = "story"
    item_count = None

    def setup(self, state: RoundState, rng: random.Random) -> None:
        state.points = BASELINE_POINTS

    def on_correct(self, state: RoundState) -> None:
        return None

    def on_incorrect(self, state: RoundState) -> None:
        state.points = max(0, state.points - WRONG_CHOICE_PENALTY)

    def compute_reward(self, state: RoundState) -> Tuple[int, bool]:
        return state.points, state.points < BASELINE_POINTS
