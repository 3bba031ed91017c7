from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from app.db import Base

class Player(Base):
    __tablename__ = "players"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(64), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=False, default="")
    grade = Column(String(2), nullable=True)        # "6" | "7" | "8"
    points = Column(Integer, nullable=False, default=0)
    last_active = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
