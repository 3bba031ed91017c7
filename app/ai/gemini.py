# app/ai/gemini.py
import os, json, re, time, logging
from typing import Any, Dict, List

import requests
from dotenv import load_dotenv

from app.core.content import normalize_questions, syllabus_for, subject_key, grade_key
from app.schemas.game import QuestionItem, StoryChoice, StoryGraph, StoryNode

load_dotenv()

log = logging.getLogger(__name__)

# ------------------ Config ------------------
GEMINI_API_KEY   = os.getenv("GEMINI_API_KEY", "").strip()
MODEL_NAME       = os.getenv("MODEL_NAME", "gemini-2.5-flash").strip()
STORY_MODEL_NAME = os.getenv("STORY_MODEL_NAME", MODEL_NAME).strip()
COOLDOWN_SEC     = float(os.getenv("GEMINI_COOLDOWN_SEC", "3"))
AI_ENABLED       = bool(GEMINI_API_KEY) and bool(MODEL_NAME)

BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

log.info("[gemini] MODEL=%r AI_ENABLED=%s KEY_SET=%s", MODEL_NAME, AI_ENABLED, "YES" if GEMINI_API_KEY else "NO")


class GeminiCooldown(RuntimeError):
    """Se pidió contenido antes de que pasara el enfriamiento entre generaciones."""


def ensure_ai_ready():
    if not GEMINI_API_KEY:
        raise RuntimeError("GEMINI_API_KEY no está definido (AI_DISABLED).")
    if not MODEL_NAME:
        raise RuntimeError("MODEL_NAME no está definido (AI_DISABLED).")


# Un solo intento por llamada: el reintento es el botón "retry" del jugador.
_session = requests.Session()

_last_call = 0.0


def check_cooldown(now: float | None = None) -> None:
    """Rechaza generaciones seguidas (< COOLDOWN_SEC). El caller cae al banco local."""
    global _last_call
    now = time.monotonic() if now is None else now
    if _last_call and now - _last_call < COOLDOWN_SEC:
        raise GeminiCooldown("Espera antes de generar de nuevo")
    _last_call = now


def _post_genai(model: str, payload: dict, timeout: int = 60) -> dict:
    """model es el id (p.ej. 'gemini-2.5-flash'), NO una URL."""
    if model.startswith("http"):
        parts = model.split("/models/")
        model = parts[-1].split(":")[0] if len(parts) > 1 else model
    url = f"{BASE_URL}/{model}:generateContent"
    resp = _session.post(url, params={"key": GEMINI_API_KEY}, json=payload, timeout=timeout)
    if resp.status_code != 200:
        raise RuntimeError(f"[gemini] non-200: {resp.status_code} body={resp.text[:400]}")
    return resp.json()


def _extract_text(data: dict) -> str:
    try:
        cand = (data.get("candidates") or [])[0]
        parts = (cand.get("content") or {}).get("parts") or []
        # Concatena todos los .text por si vinieran fragmentados
        return "".join([p.get("text", "") for p in parts if isinstance(p, dict)]).strip()
    except (IndexError, AttributeError, TypeError):
        return ""


def parse_json_text(text: str) -> dict | list:
    """
    Limpia cercas ``` y prefijos tipo 'json'; si el parse directo falla,
    recorta desde el primer '{' o '[' hasta el último '}' o ']'.
    """
    t = (text or "").strip()
    if t.startswith("```"):
        t = t.strip("`").strip()
        if t.lower().startswith("json"):
            t = t[4:].strip()

    # a veces ponen la palabra 'json' como primera línea
    if re.match(r"^\s*json\s*[\r\n]", t, re.I):
        t = re.sub(r"^\s*json\s*[\r\n]+", "", t, flags=re.I)

    try:
        return json.loads(t)
    except ValueError:
        pass

    first = min([i for i in [t.find("{"), t.find("[")] if i != -1], default=-1)
    last = max(t.rfind("}"), t.rfind("]"))
    if first != -1 and last > first:
        try:
            return json.loads(t[first:last + 1].strip())
        except ValueError:
            pass

    raise RuntimeError(f"No se pudo parsear JSON de Gemini. Texto recibido (recortado): {t[:400]}")


def _call_gemini_json(prompt_text: str,
                      model: str | None = None,
                      timeout: int = 60,
                      temperature: float = 0.7) -> dict | list:
    """Envía un prompt en texto y devuelve el JSON de la respuesta (dict o list)."""
    ensure_ai_ready()
    check_cooldown()
    model = (model or MODEL_NAME).strip()

    payload = {
        "generationConfig": {"temperature": temperature, "responseMimeType": "application/json"},
        "contents": [{"parts": [{"text": prompt_text}]}],
    }
    text = _extract_text(_post_genai(model, payload, timeout=timeout))
    if not text:
        raise RuntimeError("Gemini devolvió texto vacío o sin partes .text")
    return parse_json_text(text)


# ------------------ Prompts ------------------
def _questions_prompt(subject, grade, count: int) -> str:
    topics = syllabus_for(subject, grade)
    return json.dumps({
        "task": f"Generate {count} language revision multiple choice questions "
                f"for {getattr(subject, 'value', subject)} Grade {grade_key(grade)}.",
        "syllabus": topics,
        "must_follow": [
            "Use ONLY topics from the syllabus.",
            "Exactly 4 options per question.",
            "correctAnswer MUST be copied verbatim from options.",
            "Each question MUST include an explanation.",
            "Output ONLY a valid JSON array of {id, question, options, correctAnswer, explanation}.",
        ],
    }, ensure_ascii=False)


def _story_prompt(subject, grade) -> str:
    topics = syllabus_for(subject, grade)
    return json.dumps({
        "task": f"Create a short 'Choose Your Own Adventure' revision story for "
                f"{getattr(subject, 'value', subject)} Grade {grade_key(grade)}.",
        "syllabus": topics,
        "must_follow": [
            "Each node asks the reader a revision question through the story.",
            "Each node has 2 to 4 choices; exactly one has isCorrect true.",
            "Every choice has nextNodeId; use the id 'end' to finish the story.",
            "Output ONLY valid JSON: {startNodeId, nodes: [{id, text, choices: [{text, isCorrect, nextNodeId}]}]}.",
        ],
    }, ensure_ascii=False)


# ------------------ Sanitización ------------------
def _as_node(raw: Any) -> StoryNode | None:
    if not isinstance(raw, dict):
        return None
    node_id = str(raw.get("id") or "").strip()
    text = str(raw.get("text") or "").strip()
    if not node_id or not text:
        return None
    choices = []
    for c in (raw.get("choices") or []):
        if not isinstance(c, dict):
            continue
        ctext = str(c.get("text") or "").strip()
        nxt = str(c.get("nextNodeId") or c.get("next_node_id") or "").strip()
        if ctext and nxt:
            choices.append(StoryChoice(
                text=ctext,
                is_correct=bool(c.get("isCorrect", c.get("is_correct", False))),
                next_node_id=nxt,
            ))
    return StoryNode(id=node_id, text=text, choices=choices)


def parse_story_graph(data: Any) -> StoryGraph:
    """
    Acepta {startNodeId, nodes:[...]} o el formato viejo {startNode:{...}, nodes:[...]};
    `nodes` puede venir como lista o como dict id->nodo.
    """
    if not isinstance(data, dict):
        raise RuntimeError("La historia no es un objeto JSON")

    raw_nodes = data.get("nodes") or []
    if isinstance(raw_nodes, dict):
        raw_nodes = [dict(v, id=v.get("id") or k) for k, v in raw_nodes.items() if isinstance(v, dict)]

    nodes: Dict[str, StoryNode] = {}
    for raw in raw_nodes:
        n = _as_node(raw)
        if n is not None:
            nodes[n.id] = n

    start = data.get("startNodeId") or data.get("start_node_id")
    start_obj = _as_node(data.get("startNode"))
    if start_obj is not None:
        nodes.setdefault(start_obj.id, start_obj)
        start = start or start_obj.id

    start = str(start or "").strip()
    if not start or start not in nodes:
        raise RuntimeError("La historia no tiene nodo inicial válido")
    if not nodes[start].choices:
        raise RuntimeError("El nodo inicial no tiene decisiones")
    return StoryGraph(start_node_id=start, nodes=nodes)


# ------------------ IA: preguntas ------------------
def generate_questions(subject, grade, count: int = 10) -> List[QuestionItem]:
    """
    Pide `count` preguntas a Gemini y las normaliza.
    NO hace fallback: si algo falla lanza excepción y el caller decide.
    """
    parsed = _call_gemini_json(_questions_prompt(subject, grade, count))
    if isinstance(parsed, dict):
        parsed = parsed.get("questions") or parsed.get("items") or []
    if not isinstance(parsed, list) or not parsed:
        raise RuntimeError("Gemini devolvió un JSON que no es lista no vacía")

    items = normalize_questions(parsed, prefix=f"{subject_key(subject)[:1] or 'q'}-ai-")
    if not items:
        raise RuntimeError("Sanitización dejó la lista vacía")
    log.info("[gemini] IA generó %d preguntas (pedidas %d)", len(items), count)
    return items[:count]


# ------------------ IA: historia ------------------
def generate_story(subject, grade) -> StoryGraph:
    data = _call_gemini_json(_story_prompt(subject, grade), model=STORY_MODEL_NAME, timeout=90)
    graph = parse_story_graph(data)
    log.info("[gemini] IA generó historia de %d nodos", len(graph.nodes))
    return graph
