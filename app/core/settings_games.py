from pathlib import Path
import os

from dotenv import load_dotenv

load_dotenv()

# Raíz del paquete app/  ->  .../app
APP_DIR = Path(__file__).resolve().parents[1]
# Raíz del repo (padre de app/)  ->  ...
REPO_ROOT = APP_DIR.parent

# === Bancos de preguntas de respaldo (JSON) ===
# Puedes sobreescribir con la var de entorno CONTENT_DIR si quieres
CONTENT_DIR = Path(os.getenv("CONTENT_DIR", REPO_ROOT / "content")).resolve()
FALLBACK_DIR = CONTENT_DIR / "fallback"

# === Tiempos de presentación (segundos reales) ===
# Multiplicador global; 0 deja los feedbacks instantáneos (útil en pruebas manuales)
FEEDBACK_DELAY_SCALE = float(os.getenv("FEEDBACK_DELAY_SCALE", "1.0"))

# Revelado del texto de la historia: un carácter cada 30 ms
TEXT_REVEAL_INTERVAL = float(os.getenv("TEXT_REVEAL_INTERVAL", "0.03"))

# Longitud de la historia de respaldo armada con el banco local
FALLBACK_STORY_LENGTH = int(os.getenv("FALLBACK_STORY_LENGTH", "4"))

# Rondas cerradas que el anfitrión conserva para que el cliente lea el resultado
ROUND_RETENTION_SEC = float(os.getenv("ROUND_RETENTION_SEC", "300"))


def scaled_delay(seconds: float) -> float:
    """Aplica FEEDBACK_DELAY_SCALE a un retardo de feedback."""
    return max(0.0, seconds * FEEDBACK_DELAY_SCALE)
