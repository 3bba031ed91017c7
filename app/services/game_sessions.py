"""
Anfitrión de rondas (lado servidor del "shell" del front):
- Crea un RoundEngine por ronda y guarda sólo lo necesario para consultarla.
- Como máximo una ronda activa por jugador: empezar otra cancela la anterior.
- Al terminar, persiste el resultado en el ledger (0 puntos -> no se persiste).
- Las rondas cerradas se conservan ROUND_RETENTION_SEC para leer el resultado;
  empezar otra ronda descarta las cerradas del mismo jugador.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional
import logging, time

from app.core.engines.base import Phase
from app.core.engines.clock import AsyncioScheduler, Scheduler
from app.core.engines.registry import get_policy_for_mode
from app.core.engines.round import RoundEngine
from app.core.engines.supplier import ContentSupplier
from app.core.settings_games import ROUND_RETENTION_SEC
from app.core.utils_text import reveal_done, revealed_text
from app.db import SessionLocal
from app.domain.scores.service import PlayerNotFound, record_outcome

log = logging.getLogger(__name__)


@dataclass
class HostedRound:
    engine: RoundEngine
    player_id: int
    outcome: Optional[Dict[str, Any]] = None
    cancelled: bool = False
    closed_at: Optional[float] = None
    # presentación: desde cuándo se ve el nodo actual de la historia
    node_seen: Optional[str] = None
    node_seen_at: float = field(default=0.0)

    @property
    def session_id(self) -> str:
        return self.engine.session_id


class GameSessionRegistry:
    def __init__(
        self,
        session_factory: Callable = SessionLocal,
        scheduler_factory: Callable[[], Scheduler] = AsyncioScheduler,
        clock: Callable[[], float] = time.monotonic,
        retention: float = ROUND_RETENTION_SEC,
    ):
        self._session_factory = session_factory
        self._scheduler_factory = scheduler_factory
        self._clock = clock
        self._retention = retention
        self._rounds: Dict[str, HostedRound] = {}
        self._active_by_player: Dict[int, str] = {}

    # ---- Flow ---------------------------------------------------------------
    async def start(self, player_id: int, mode: str, subject, grade, supplier: ContentSupplier,
                    seed: Optional[int] = None) -> HostedRound:
        policy = get_policy_for_mode(mode)

        prev = self._active_by_player.get(player_id)
        if prev and prev in self._rounds:
            self._rounds[prev].engine.cancel()
        self._evict(player_id)

        hosted: Optional[HostedRound] = None

        def on_complete(points: int, penalty: bool) -> None:
            self._finish(hosted, points, penalty)

        def on_cancel() -> None:
            hosted.cancelled = True
            self._release(hosted)

        engine = RoundEngine(
            policy, subject, grade,
            supplier=supplier,
            scheduler=self._scheduler_factory(),
            on_complete=on_complete,
            on_cancel=on_cancel,
            seed=seed,
        )
        hosted = HostedRound(engine=engine, player_id=player_id)
        self._rounds[engine.session_id] = hosted
        self._active_by_player[player_id] = engine.session_id

        await engine.start()
        return hosted

    def get(self, session_id: str) -> Optional[HostedRound]:
        self._evict()
        return self._rounds.get(session_id)

    def submit(self, session_id: str, answer: Any) -> bool:
        hosted = self._require(session_id)
        return hosted.engine.submit(answer)

    async def retry(self, session_id: str) -> HostedRound:
        hosted = self._require(session_id)
        await hosted.engine.retry()
        return hosted

    def cancel(self, session_id: str) -> bool:
        hosted = self._require(session_id)
        return hosted.engine.cancel()

    def active_session_for(self, player_id: int) -> Optional[str]:
        return self._active_by_player.get(player_id)

    # ---- internals -----------------------------------------------------------
    def _require(self, session_id: str) -> HostedRound:
        hosted = self.get(session_id)
        if hosted is None:
            raise KeyError(session_id)
        return hosted

    def _release(self, hosted: HostedRound) -> None:
        hosted.closed_at = self._clock()
        if self._active_by_player.get(hosted.player_id) == hosted.session_id:
            del self._active_by_player[hosted.player_id]

    def _evict(self, player_id: Optional[int] = None) -> None:
        """Descarta rondas cerradas: las vencidas y, si se indica, todas las del jugador."""
        now = self._clock()
        stale = [
            sid for sid, h in self._rounds.items()
            if h.closed_at is not None and (h.player_id == player_id or now - h.closed_at >= self._retention)
        ]
        for sid in stale:
            del self._rounds[sid]
        if stale:
            log.debug("evicted %d closed rounds", len(stale))

    def _finish(self, hosted: HostedRound, points: int, penalty: bool) -> None:
        st = hosted.engine.state
        hosted.outcome = {"points": points, "penalty": penalty, "persisted": False}
        self._release(hosted)

        db = self._session_factory()
        try:
            entry = record_outcome(
                db, hosted.player_id,
                game_type=st.mode, subject=st.subject, grade=st.grade,
                points=points, penalty=penalty,
            )
            hosted.outcome["persisted"] = entry is not None
        except PlayerNotFound:
            log.warning("player %s vanished before round %s finished", hosted.player_id, hosted.session_id)
        finally:
            db.close()

    # ---- Vista ---------------------------------------------------------------
    def snapshot(self, hosted: HostedRound) -> Dict[str, Any]:
        st = hosted.engine.state
        fb = st.feedback
        out: Dict[str, Any] = {
            "sessionId": hosted.session_id,
            "mode": st.mode,
            "subject": st.subject,
            "grade": st.grade,
            "phase": st.phase.value,
            "error": st.error,
            "canRetry": st.phase == Phase.error,
            "currentIndex": st.current_index,
            "totalItems": len(st.items) if st.story is None else None,
            "timeRemaining": st.time_remaining,
            "timeBudget": st.time_budget,
            "wrongCount": st.wrong_count,
            "streak": st.streak,
            "opponentHp": st.opponent_hp,
            "lives": st.lives,
            "points": st.points,
            "opponent": st.flavor.get("opponent"),
            "question": None,
            "node": None,
            "feedback": None,
            "outcome": hosted.outcome,
        }

        q = st.current_question if st.story is None else None
        if q is not None and st.phase in (Phase.active, Phase.feedback):
            out["question"] = {"id": q.id, "prompt": q.prompt, "options": list(q.options)}

        node = st.current_node
        if node is not None:
            if hosted.node_seen != node.id:
                hosted.node_seen = node.id
                hosted.node_seen_at = self._clock()
            elapsed = self._clock() - hosted.node_seen_at
            out["node"] = {
                "id": node.id,
                "text": node.text,
                "revealedText": revealed_text(node.text, elapsed),
                "revealDone": reveal_done(node.text, elapsed),
                "choices": [{"index": i, "text": c.text} for i, c in enumerate(node.choices)],
            }

        if fb is not None:
            out["feedback"] = {
                "correct": fb.correct,
                "selected": fb.selected,
                "timedOut": fb.timed_out,
                "correctOption": fb.correct_option,
                "explanation": fb.explanation,
            }
        return out


registry = GameSessionRegistry()
