import sys
from pathlib import Path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path: sys.path.insert(0, str(ROOT))

from sqlalchemy import select
from app.db import Base, SessionLocal, engine
from app.models.player import Player
from app.models import score_entry  # noqa: F401

SEEDS = [
    {"username": "demo", "full_name": "Demo Player", "grade": "6"},
    {"username": "asha", "full_name": "Asha Verma", "grade": "7"},
]

def upsert(db, data):
    row = db.execute(select(Player).where(Player.username==data["username"])).scalar_one_or_none()
    if row:
        row.full_name = data["full_name"]
        row.grade = data["grade"]
    else:
        row = Player(**data); db.add(row)
    db.commit()

def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        for d in SEEDS: upsert(db, d)
        print("Players seed OK")
    finally:
        db.close()

if __name__ == "__main__":
    main()
