from __future__ import annotations
from typing import List, Protocol, Union
import asyncio, logging

from app.ai import gemini
from app.core.content import fallback_questions, fallback_story
from app.core.engines.errors import ContentUnavailable
from app.schemas.game import QuestionItem, StoryGraph

log = logging.getLogger(__name__)


class ContentSupplier(Protocol):
    """Fuente externa de contenido. Puede fallar (excepción) o devolver vacío."""

    async def fetch_questions(self, subject, grade, count: int) -> List[QuestionItem]:
        ...

    async def fetch_story_graph(self, subject, grade) -> StoryGraph:
        ...


class GeminiSupplier:
    """Adaptador async sobre app.ai.gemini (requests es bloqueante -> hilo aparte)."""

    async def fetch_questions(self, subject, grade, count: int) -> List[QuestionItem]:
        return await asyncio.to_thread(gemini.generate_questions, subject, grade, count)

    async def fetch_story_graph(self, subject, grade) -> StoryGraph:
        return await asyncio.to_thread(gemini.generate_story, subject, grade)


async def load_questions(supplier: ContentSupplier, subject, grade, count: int) -> List[QuestionItem]:
    """
    Preguntas del proveedor; si falla o viene vacío usa el banco local de la materia
    (repetido/recortado a `count`). Sin banco -> ContentUnavailable.
    """
    try:
        items = list(await supplier.fetch_questions(subject, grade, count) or [])
    except Exception as e:
        log.warning("content supplier failed (%s); using fallback bank for %s", e, subject)
        items = []
    else:
        if not items:
            log.warning("content supplier returned no questions; using fallback bank for %s", subject)

    if items:
        return items[:count]

    items = fallback_questions(subject, count)
    if not items:
        raise ContentUnavailable(f"Sin preguntas para {getattr(subject, 'value', subject)}")
    return items


def _playable(graph: StoryGraph) -> bool:
    start = graph.get(graph.start_node_id)
    return start is not None and bool(start.choices)


async def load_story(supplier: ContentSupplier, subject, grade) -> StoryGraph:
    try:
        graph = await supplier.fetch_story_graph(subject, grade)
    except Exception as e:
        log.warning("story supplier failed (%s); using fallback story for %s", e, subject)
        graph = None
    else:
        if graph is None:
            log.warning("story supplier returned nothing; using fallback story for %s", subject)
        elif not _playable(graph):
            # grafo armado sin validar (p.ej. model_construct): sin decisiones no hay ronda
            log.warning("story supplier returned a graph without a playable start; using fallback story for %s", subject)
            graph = None

    if graph is not None:
        return graph

    graph = fallback_story(subject)
    if graph is None:
        raise ContentUnavailable(f"Sin historia para {getattr(subject, 'value', subject)}")
    return graph


async def load_content(policy, supplier: ContentSupplier, subject, grade) -> Union[List[QuestionItem], StoryGraph]:
    if policy.content_kind == "story":
        return await load_story(supplier, subject, grade)
    return await load_questions(supplier, subject, grade, policy.item_count or 10)
