from __future__ import annotations

import os
import tempfile

# Antes de importar app.*: DB en memoria, feedbacks instantáneos y sin IA ni bancos externos.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["FEEDBACK_DELAY_SCALE"] = "0"
os.environ["GEMINI_API_KEY"] = ""
os.environ["CONTENT_DIR"] = os.path.join(tempfile.gettempdir(), "linguoquest-tests-no-content")

from dataclasses import dataclass, field
from typing import Callable, List, Optional

import pytest

from app.core.engines.registry import get_policy_for_mode
from app.core.engines.round import RoundEngine
from app.schemas.game import Grade, QuestionItem, StoryChoice, StoryGraph, StoryNode, Subject


class _FakeTimer:
    def __init__(self, when: float, seq: int, callback: Callable[[], None], interval: Optional[float]) -> None:
        self.when = when
        self.seq = seq
        self.callback = callback
        self.interval = interval
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Reloj manual: nada corre hasta que el test llama advance()."""

    def __init__(self) -> None:
        self.now = 0.0
        self._seq = 0
        self._timers: List[_FakeTimer] = []
        self.delays: List[float] = []

    def _add(self, delay: float, callback, interval) -> _FakeTimer:
        self._seq += 1
        t = _FakeTimer(self.now + delay, self._seq, callback, interval)
        self._timers.append(t)
        return t

    def call_later(self, delay: float, callback) -> _FakeTimer:
        self.delays.append(delay)
        return self._add(delay, callback, None)

    def call_every(self, interval: float, callback) -> _FakeTimer:
        return self._add(interval, callback, interval)

    def active(self) -> List[_FakeTimer]:
        self._timers = [t for t in self._timers if not t.cancelled]
        return list(self._timers)

    def advance(self, seconds: float = 0.0) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self.active() if t.when <= target]
            if not due:
                break
            t = min(due, key=lambda x: (x.when, x.seq))
            self.now = max(self.now, t.when)
            if t.interval is None:
                t.cancelled = True
            else:
                t.when += t.interval
            t.callback()
        self.now = target


class FakeSupplier:
    def __init__(self, questions: Optional[List[QuestionItem]] = None, story: Optional[StoryGraph] = None,
                 error: Optional[Exception] = None) -> None:
        self.questions = questions
        self.story = story
        self.error = error
        self.calls = 0

    async def fetch_questions(self, subject, grade, count: int) -> List[QuestionItem]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.questions or [])

    async def fetch_story_graph(self, subject, grade) -> Optional[StoryGraph]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.story


@dataclass
class Outcomes:
    events: List[tuple] = field(default_factory=list)

    def complete(self, points: int, penalty: bool) -> None:
        self.events.append(("complete", points, penalty))

    def cancel(self) -> None:
        self.events.append(("cancel",))


def make_questions(n: int, prefix: str = "q") -> List[QuestionItem]:
    return [
        QuestionItem(
            id=f"{prefix}{i + 1}",
            prompt=f"Question {i + 1}?",
            options=["right", "wrong a", "wrong b", "wrong c"],
            correct_option="right",
            explanation=f"Because {i + 1}.",
        )
        for i in range(n)
    ]


def make_story(*nodes: StoryNode, start: str = "n1") -> StoryGraph:
    return StoryGraph(start_node_id=start, nodes={n.id: n for n in nodes})


def node(node_id: str, text: str, *choices: tuple) -> StoryNode:
    """choices: (texto, es_correcta, siguiente)."""
    return StoryNode(
        id=node_id,
        text=text,
        choices=[StoryChoice(text=t, is_correct=ok, next_node_id=nxt) for t, ok, nxt in choices],
    )


@dataclass
class Harness:
    engine: RoundEngine
    scheduler: FakeScheduler
    outcomes: Outcomes
    supplier: FakeSupplier

    @property
    def state(self):
        return self.engine.state

    def answer(self, value) -> bool:
        accepted = self.engine.submit(value)
        self.scheduler.advance(0)
        return accepted


@pytest.fixture
def harness():
    import asyncio

    def _make(mode: str, supplier: Optional[FakeSupplier] = None, *, subject=Subject.english,
              grade=Grade.grade_6, seed: int = 7, start: bool = True) -> Harness:
        scheduler = FakeScheduler()
        outcomes = Outcomes()
        supplier = supplier or FakeSupplier(questions=make_questions(15))
        engine = RoundEngine(
            get_policy_for_mode(mode), subject, grade,
            supplier=supplier,
            scheduler=scheduler,
            on_complete=outcomes.complete,
            on_cancel=outcomes.cancel,
            seed=seed,
        )
        if start:
            asyncio.run(engine.start())
        return Harness(engine, scheduler, outcomes, supplier)

    return _make
