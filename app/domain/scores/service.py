from sqlalchemy.orm import Session
from typing import Optional
import logging

from app.models.player import Player
from app.models.score_entry import ScoreEntry

log = logging.getLogger(__name__)

class PlayerNotFound(Exception): ...


def get_player(db: Session, player_id: int) -> Player:
    player = db.get(Player, player_id)
    if player is None:
        raise PlayerNotFound(player_id)
    return player


def record_outcome(
    db: Session,
    player_id: int,
    *,
    game_type: str,
    subject: str,
    grade: str,
    points: int,
    penalty: bool,
) -> Optional[ScoreEntry]:
    """
    Registra el resultado de una ronda en el ledger y suma los puntos al jugador.
    Con 0 puntos NO se persiste nada y devuelve None.
    """
    if points <= 0:
        log.info("outcome for player %s (%s) has no points; not persisted", player_id, game_type)
        return None

    player = get_player(db, player_id)
    entry = ScoreEntry(
        player_id=player.id,
        game_type=game_type,
        subject=subject,
        grade=grade,
        points_earned=int(points),
        penalty=bool(penalty),
    )
    player.points = int(player.points or 0) + int(points)
    db.add(entry)
    db.add(player)
    db.commit()
    db.refresh(entry)
    return entry
