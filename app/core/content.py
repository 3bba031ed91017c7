from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List
import json, logging

from pydantic import ValidationError

from app.core.settings_games import FALLBACK_DIR, FALLBACK_STORY_LENGTH
from app.schemas.game import QuestionItem, StoryChoice, StoryGraph, StoryNode

log = logging.getLogger(__name__)

# =========================
# Banco local de respaldo
# =========================
# Se usa cuando el proveedor de contenido (Gemini) falla o devuelve vacío.
FALLBACK_QUESTIONS: Dict[str, List[Dict[str, Any]]] = {
    "english": [
        {
            "id": "e1",
            "question": "Identify the figure of speech: 'The wind whispered through the trees'.",
            "options": ["Simile", "Metaphor", "Personification", "Alliteration"],
            "correctAnswer": "Personification",
            "explanation": "Attributing human qualities (whispering) to non-human things (wind) is personification.",
        },
        {
            "id": "e2",
            "question": "Which tense is used in: 'I have been studying for three hours'?",
            "options": ["Past Continuous", "Present Perfect Continuous", "Future Perfect", "Present Perfect"],
            "correctAnswer": "Present Perfect Continuous",
            "explanation": "The structure 'have been + verb-ing' denotes an action that started in the past and continues to the present.",
        },
    ],
    "hindi": [
        {
            "id": "h1",
            "question": "सूरदास की प्रसिद्ध रचना कौन सी है?",
            "options": ["साकेत", "सूरसागर", "कामायनी", "यशोधरा"],
            "correctAnswer": "सूरसागर",
            "explanation": "सूरसागर सूरदास की सबसे प्रसिद्ध और महत्वपूर्ण रचना है।",
        },
        {
            "id": "h2",
            "question": "'कमल' का पर्यायवाची शब्द क्या है?",
            "options": ["नीरद", "पंकज", "अंबर", "दिनकर"],
            "correctAnswer": "पंकज",
            "explanation": "पंकज कमल का पर्यायवाची है, जिसका अर्थ है कीचड़ में जन्म लेने वाला।",
        },
    ],
    "french": [
        {
            "id": "f1",
            "question": "Comment dit-on 'I have' en français ?",
            "options": ["Je suis", "J'ai", "Je vais", "Je fais"],
            "correctAnswer": "J'ai",
            "explanation": "Le verbe 'avoir' (to have) à la première personne du présent est 'J'ai'.",
        },
        {
            "id": "f2",
            "question": "Quel est le pluriel de 'le journal' ?",
            "options": ["les journals", "les journaux", "les journale", "les journalles"],
            "correctAnswer": "les journaux",
            "explanation": "En français, les mots finissant par -al prennent généralement -aux au pluriel.",
        },
    ],
}

# Temario por materia/grado (se inyecta en el prompt de Gemini)
SYLLABUS: Dict[str, Dict[str, Dict[str, List[str]]]] = {
    "english": {
        "6": {
            "literature": ["Neem Baba", "The Unlikely Best Friends", "The Merchant of Venice (Play)",
                           "The Chair (Play)", "The Painted Ceiling (Poem)"],
            "grammar": ["Active Passive Voice", "Conjunctions", "Prepositions", "Tenses",
                        "Subject Verb Agreement", "Idioms", "One word Substitution"],
        },
        "7": {"literature": ["The School Boy", "Mrs. Packletide’s Tiger"], "grammar": ["Verbs", "Determiners"]},
        "8": {"literature": ["As You Like It", "The Best Christmas Present"],
              "grammar": ["Reported Speech", "Sentence Reordering"]},
    },
    "french": {
        "6": {
            "grammar": ["Verb avoir", "Verb aller", "Prepositions", "Negation"],
            "lessons": ["Leçon-6 Tu es de quel pays", "Leçon-7 Le Week-end", "Lecon-8 Ma famille",
                        "Leçon-9 Bon Anniversaire", "Lecon-10 Ma saison preferee"],
        },
        "7": {"grammar": ["Adjectives", "Imperative"], "lessons": ["Leçon 6: Les fêtes", "Leçon 7: La francophonie"]},
        "8": {"grammar": ["Interrogation"],
              "lessons": ["Leçon 8: La nouvelle génération", "Leçon 9: On prépare la fête"]},
    },
    "hindi": {
        "6": {
            "literature": ["मैया मैं नहिं माखन खायो (सूरदास)", "हिन्द महासागर में छोटा-सा हिन्दुस्तान", "परख",
                           "स्त्रियाँ और बिहू नृत्य", "चेतक की वीरता"],
            "grammar": ["वर्ण विचार", "अव्यय-क्रिया विशेषण", "काल", "विराम चिह्न", "स्वर संधि (दीर्घ)", "वाक्य",
                        "अशुद्धि शोधन", "समरूपी भिन्नार्थक शब्द"],
        },
        "7": {"literature": ["कबीर की साखियाँ"], "grammar": ["समास", "पर्यायवाची"]},
        "8": {"literature": ["अकबरी लोटा", "सुदामा चरित"], "grammar": ["उपसर्ग", "प्रत्यय"]},
    },
}


def subject_key(subject) -> str:
    """'English' | Subject.english | 'english' -> 'english'."""
    raw = getattr(subject, "value", subject)
    return str(raw or "").strip().lower()


def grade_key(grade) -> str:
    raw = getattr(grade, "value", grade)
    return str(raw or "").strip()


def syllabus_for(subject, grade) -> Dict[str, List[str]]:
    """Temario del grado; si el grado no existe usa el de 6.º"""
    by_grade = SYLLABUS.get(subject_key(subject)) or {}
    return by_grade.get(grade_key(grade)) or by_grade.get("6") or {}


# =========================
# Normalización
# =========================

def to_question_item(raw: Dict[str, Any], fallback_id: str) -> QuestionItem | None:
    """
    Convierte un ítem crudo ({question, options, correctAnswer, explanation}) en QuestionItem.
    Acepta también las claves ya normalizadas (prompt, correct_option).
    Devuelve None si el ítem no es utilizable (p.ej. la correcta no está entre las opciones).
    """
    if not isinstance(raw, dict):
        return None
    prompt = str(raw.get("question") or raw.get("prompt") or "").strip()
    correct = str(raw.get("correctAnswer") or raw.get("correct_option") or "").strip()

    seen, options = set(), []
    for o in (raw.get("options") or []):
        s = str(o or "").strip()
        if s and s not in seen:
            seen.add(s); options.append(s)
    # la correcta nunca se recorta
    if correct in options and options.index(correct) >= 4:
        options = options[:3] + [correct]
    options = options[:4]

    if not prompt or not correct or correct not in options:
        return None
    try:
        return QuestionItem(
            id=str(raw.get("id") or fallback_id),
            prompt=prompt,
            options=options,
            correct_option=correct,
            explanation=str(raw.get("explanation") or "").strip() or None,
        )
    except ValidationError:
        return None


def normalize_questions(raw_items: List[Dict[str, Any]], prefix: str = "q") -> List[QuestionItem]:
    out: List[QuestionItem] = []
    for i, raw in enumerate(raw_items or []):
        it = to_question_item(raw, f"{prefix}{i + 1}")
        if it is not None:
            out.append(it)
    return out


def fit_to_count(items: List[QuestionItem], count: int) -> List[QuestionItem]:
    """Repite el banco cíclicamente y recorta a `count`. Las copias llevan id con sufijo -rN."""
    if not items or count <= 0:
        return []
    out: List[QuestionItem] = []
    i = 0
    while len(out) < count:
        base = items[i % len(items)]
        lap = i // len(items)
        out.append(base if lap == 0 else base.model_copy(update={"id": f"{base.id}-r{lap}"}))
        i += 1
    return out


# =========================
# Banco de respaldo
# =========================

def resolve_fallback_path(subject) -> Path:
    return FALLBACK_DIR / f"{subject_key(subject)}.json"


def load_fallback_bank(subject) -> List[QuestionItem]:
    """
    Banco local de la materia. Si existe CONTENT_DIR/fallback/<materia>.json reemplaza al incorporado.
    """
    raw = FALLBACK_QUESTIONS.get(subject_key(subject)) or []
    p = resolve_fallback_path(subject)
    if p.exists():
        try:
            data = json.loads(p.read_text(encoding="utf-8"))
            if isinstance(data, list):
                raw = data
        except (OSError, ValueError) as e:
            log.warning("fallback bank %s unreadable: %s", p, e)
    return normalize_questions(raw, prefix=subject_key(subject)[:1] or "q")


def fallback_questions(subject, count: int) -> List[QuestionItem]:
    return fit_to_count(load_fallback_bank(subject), count)


def story_from_questions(items: List[QuestionItem], ending_id: str = "end") -> StoryGraph | None:
    """
    Historia lineal de respaldo: un nodo por pregunta, las opciones son las decisiones.
    Todas las decisiones avanzan al siguiente nodo; las del último llevan a `ending_id`,
    que no existe en el grafo (final de la historia).
    """
    if not items:
        return None
    ids = [f"node-{i + 1}" for i in range(len(items))]
    nodes: Dict[str, StoryNode] = {}
    for i, it in enumerate(items):
        nxt = ids[i + 1] if i + 1 < len(ids) else ending_id
        nodes[ids[i]] = StoryNode(
            id=ids[i],
            text=it.prompt,
            choices=[StoryChoice(text=o, is_correct=(o == it.correct_option), next_node_id=nxt) for o in it.options],
        )
    return StoryGraph(start_node_id=ids[0], nodes=nodes)


def fallback_story(subject) -> StoryGraph | None:
    return story_from_questions(fallback_questions(subject, FALLBACK_STORY_LENGTH))
