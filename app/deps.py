from app.db import get_db
from app.core.engines.supplier import ContentSupplier, GeminiSupplier
from app.services.game_sessions import GameSessionRegistry, registry

_supplier = GeminiSupplier()


def get_supplier() -> ContentSupplier:
    """Proveedor de contenido por defecto (Gemini con fallback local)."""
    return _supplier


def get_sessions() -> GameSessionRegistry:
    return registry

__all__ = ["get_db", "get_supplier", "get_sessions"]
