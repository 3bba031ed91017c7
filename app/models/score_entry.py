from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Boolean
from sqlalchemy.sql import func
from app.db import Base

class ScoreEntry(Base):
    __tablename__ = "score_entries"
    id = Column(Integer, primary_key=True)
    player_id = Column(Integer, ForeignKey("players.id", ondelete="CASCADE"), index=True, nullable=False)
    game_type = Column(String(20), nullable=False)       # escape | battle | story | sprint
    subject = Column(String(20), nullable=False)          # English | Hindi | French
    grade = Column(String(2), nullable=False)
    points_earned = Column(Integer, nullable=False, default=0)
    penalty = Column(Boolean, nullable=False, default=False)   # la ronda terminó con penalización
    created_at = Column(DateTime(timezone=True), server_default=func.now())
