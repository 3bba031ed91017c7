import os, logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from app.db import Base, engine

# modelos registrados en Base.metadata antes del create_all
from app.models import player, score_entry  # noqa: F401
from app.routers import games as games_router

load_dotenv()
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
Base.metadata.create_all(bind=engine)

app = FastAPI(title="LinguoQuest Games API")

# ==== CORS ====
origins = os.getenv("CORS_ORIGINS", "")
origins_list = [o.strip() for o in origins.split(",")] if origins else ["http://localhost:5173"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ==== Routers ====
app.include_router(games_router.router)

@app.get("/health")
def health():
    return {"status": "ok"}
