from app.core.settings_games import TEXT_REVEAL_INTERVAL


def revealed_text(text: str, elapsed_sec: float, interval: float = TEXT_REVEAL_INTERVAL) -> str:
    """
    Efecto máquina de escribir de la historia: un carácter por `interval`.
    Es sólo presentación; el motor no lo consulta para decidir nada.
    """
    if not text:
        return text
    if interval <= 0:
        return text
    shown = int(max(0.0, elapsed_sec) / interval) + 1
    return text[:min(len(text), shown)]


def reveal_done(text: str, elapsed_sec: float, interval: float = TEXT_REVEAL_INTERVAL) -> bool:
    return len(revealed_text(text, elapsed_sec, interval)) >= len(text or "")
