from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Tuple
import random

from app.schemas.game import QuestionItem, StoryGraph, StoryNode


class Phase(str, Enum):
    loading = "loading"
    error = "error"            # ContentUnavailable: admite retry() o cancel()
    active = "active"
    feedback = "feedback"
    terminated = "terminated"
    cancelled = "cancelled"


# Qué hacer cuando el contador de un modo llega a 0
EXPIRY_FAIL = "fail"       # termina la ronda con (0, True)
EXPIRY_SUBMIT = "submit"   # respuesta vacía implícita -> Feedback


@dataclass
class Feedback:
    correct: bool
    selected: str
    timed_out: bool = False
    correct_option: Optional[str] = None
    explanation: Optional[str] = None


@dataclass
class RoundState:
    mode: str
    subject: str
    grade: str
    phase: Phase = Phase.loading
    error: Optional[str] = None

    # contenido: lista de preguntas o grafo de historia
    items: List[QuestionItem] = field(default_factory=list)
    current_index: int = 0
    story: Optional[StoryGraph] = None
    current_node_id: Optional[str] = None
    pending_node_id: Optional[str] = None

    # acumuladores (cada modo usa los suyos)
    wrong_count: int = 0
    streak: int = 0
    opponent_hp: int = 0
    lives: int = 0
    points: int = 0
    time_remaining: Optional[float] = None
    time_budget: Optional[float] = None

    answered: int = 0
    failed: bool = False
    feedback: Optional[Feedback] = None
    flavor: Dict[str, Any] = field(default_factory=dict)
    reward: Optional[Tuple[int, bool]] = None

    @property
    def current_question(self) -> Optional[QuestionItem]:
        if 0 <= self.current_index < len(self.items):
            return self.items[self.current_index]
        return None

    @property
    def current_node(self) -> Optional[StoryNode]:
        if self.story is None or self.current_node_id is None:
            return None
        return self.story.get(self.current_node_id)

    @property
    def is_last_item(self) -> bool:
        return self.current_index >= len(self.items) - 1


class ModePolicy(Protocol):
    """
    Reglas de un modo de juego sobre la máquina de estados compartida (RoundEngine).
    El motor decide CUÁNDO; la política decide CUÁNTO (tiempos, puntos, vidas, final).
    """

    slug: str
    title: str
    content_kind: str                     # "questions" | "story"
    item_count: Optional[int]             # None = lo define el grafo
    tick_interval: Optional[float] = None  # None = sin reloj
    ticks_in_feedback: bool = False

    def setup(self, state: RoundState, rng: random.Random) -> None:
        """Inicializa acumuladores al crear la ronda."""
        ...

    def on_item_shown(self, state: RoundState) -> None:
        """Hook al mostrar un ítem (Sprint reinicia aquí su cuenta regresiva)."""
        return None

    def on_correct(self, state: RoundState) -> None:
        ...

    def on_incorrect(self, state: RoundState) -> None:
        ...

    def on_tick(self, state: RoundState, dt: float) -> bool:
        """Descuenta `dt`; devuelve True si el contador llegó a 0."""
        return False

    def on_expired(self, state: RoundState) -> str:
        return EXPIRY_SUBMIT

    def should_advance(self, state: RoundState, correct: bool) -> bool:
        return True

    def is_terminal(self, state: RoundState) -> bool:
        return False

    def compute_reward(self, state: RoundState) -> Tuple[int, bool]:
        """(puntos >= 0, hubo_penalización)."""
        ...

    def feedback_delay(self, correct: bool) -> float:
        return 1.5
