from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session
from typing import Union

from app.deps import get_db, get_sessions, get_supplier
from app.core.engines.registry import available_modes, get_policy_for_mode
from app.core.engines.supplier import ContentSupplier
from app.domain.scores.service import PlayerNotFound, get_player
from app.schemas.game import Grade, Subject
from app.services.game_sessions import GameSessionRegistry, HostedRound

router = APIRouter(prefix="/games", tags=["games"])


class StartRoundIn(BaseModel):
    playerId: int
    subject: Subject
    grade: Grade

    @field_validator("grade", mode="before")
    def grade_as_text(cls, v):
        # el front manda 6 | "6" | "Grade 6"
        return str(v).lower().replace("grade", "").strip()


class AnswerIn(BaseModel):
    # índice de opción/decisión o su texto
    answer: Union[int, str] = Field(...)


def _hosted_or_404(sessions: GameSessionRegistry, session_id: str) -> HostedRound:
    hosted = sessions.get(session_id)
    if hosted is None:
        raise HTTPException(status_code=404, detail="Sesión no encontrada")
    return hosted


@router.get("/modes")
def list_modes():
    return {"modes": available_modes()}


@router.post("/{mode}/start")
async def start_round(
    mode: str,
    body: StartRoundIn,
    db: Session = Depends(get_db),
    sessions: GameSessionRegistry = Depends(get_sessions),
    supplier: ContentSupplier = Depends(get_supplier),
):
    try:
        get_policy_for_mode(mode)
    except ValueError:
        raise HTTPException(status_code=404, detail="Modo no encontrado")
    try:
        get_player(db, body.playerId)
    except PlayerNotFound:
        raise HTTPException(status_code=404, detail="Jugador no encontrado")

    hosted = await sessions.start(body.playerId, mode, body.subject, body.grade, supplier)
    return sessions.snapshot(hosted)


@router.get("/session/{session_id}")
async def get_round(session_id: str, sessions: GameSessionRegistry = Depends(get_sessions)):
    hosted = _hosted_or_404(sessions, session_id)
    return sessions.snapshot(hosted)


@router.post("/session/{session_id}/answer")
async def answer_round(
    session_id: str,
    body: AnswerIn,
    sessions: GameSessionRegistry = Depends(get_sessions),
):
    hosted = _hosted_or_404(sessions, session_id)
    accepted = sessions.submit(session_id, body.answer)
    return {"accepted": accepted, "session": sessions.snapshot(hosted)}


@router.post("/session/{session_id}/retry")
async def retry_round(session_id: str, sessions: GameSessionRegistry = Depends(get_sessions)):
    hosted = _hosted_or_404(sessions, session_id)
    await sessions.retry(session_id)
    return sessions.snapshot(hosted)


@router.post("/session/{session_id}/cancel")
async def cancel_round(session_id: str, sessions: GameSessionRegistry = Depends(get_sessions)):
    hosted = _hosted_or_404(sessions, session_id)
    cancelled = sessions.cancel(session_id)
    return {"cancelled": cancelled, "session": sessions.snapshot(hosted)}
