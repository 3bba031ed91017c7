from __future__ import annotations
from typing import Dict, List, Type
import re

from app.core.engines.base import ModePolicy
from app.core.engines.modes.battle import BattlePolicy
from app.core.engines.modes.escape import EscapePolicy
from app.core.engines.modes.sprint import SprintPolicy
from app.core.engines.modes.story import StoryPolicy

_MODE_MAP: Dict[str, Type[ModePolicy]] = {
    EscapePolicy.slug: EscapePolicy,
    BattlePolicy.slug: BattlePolicy,
    StoryPolicy.slug: StoryPolicy,
    SprintPolicy.slug: SprintPolicy,
}

# nombres que usa el front ("Escape the Chapter", "The Boss Battle", ...)
_ALIASES: Dict[str, str] = {
    "escape-the-chapter": "escape",
    "sequential-unlock": "escape",
    "the-boss-battle": "battle",
    "boss-battle": "battle",
    "interactive-story": "story",
    "branching-narrative": "story",
    "recall-sprint": "sprint",
    "flash-recall-sprint": "sprint",
}


def _normalize_mode(name: str) -> str:
    """'The Boss Battle' -> 'the-boss-battle'."""
    return re.sub(r"[^a-z0-9]+", "-", str(name or "").strip().lower()).strip("-")


def get_policy_for_mode(mode: str) -> ModePolicy:
    """
    Uso:
      get_policy_for_mode("escape")
      get_policy_for_mode("Escape the Chapter")
    """
    key = _normalize_mode(mode)
    key = _ALIASES.get(key, key)
    cls = _MODE_MAP.get(key)
    if cls is None:
        raise ValueError(f"Modo no encontrado: {mode}")
    return cls()


def available_modes() -> List[Dict[str, object]]:
    return [
        {"slug": cls.slug, "title": cls.title, "content": cls.content_kind, "items": cls.item_count}
        for cls in _MODE_MAP.values()
    ]
