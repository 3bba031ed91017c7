from __future__ import annotations
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class Subject(str, Enum):
    english = "English"
    hindi = "Hindi"
    french = "French"


class Grade(str, Enum):
    grade_6 = "6"
    grade_7 = "7"
    grade_8 = "8"


class QuestionItem(BaseModel):
    """Pregunta de opción múltiple ya normalizada (4 opciones, la correcta incluida)."""
    id: str
    prompt: str
    options: List[str]
    correct_option: str
    explanation: Optional[str] = None

    @field_validator("options")
    def options_not_empty(cls, v):
        if len(v) < 2:
            raise ValueError("a question needs at least two options")
        return v

    @model_validator(mode="after")
    def correct_in_options(self):
        if self.correct_option not in self.options:
            raise ValueError("correct_option must be one of options")
        return self


class StoryChoice(BaseModel):
    text: str
    is_correct: bool = False
    next_node_id: str


class StoryNode(BaseModel):
    id: str
    text: str
    choices: List[StoryChoice] = Field(default_factory=list)


class StoryGraph(BaseModel):
    """
    Grafo de la historia ramificada.
    Un next_node_id que no existe en `nodes` es la señal de final.
    """
    start_node_id: str
    nodes: Dict[str, StoryNode]

    @model_validator(mode="after")
    def start_is_playable(self):
        start = self.nodes.get(self.start_node_id)
        if start is None:
            raise ValueError(f"start node {self.start_node_id!r} is not in the graph")
        if not start.choices:
            raise ValueError(f"start node {self.start_node_id!r} has no choices")
        return self

    def get(self, node_id: str) -> Optional[StoryNode]:
        return self.nodes.get(node_id)
