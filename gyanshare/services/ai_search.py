"""
AI search over shared notes using Gemini (Vertex AI via google-genai).
The model only ranks: it gets the question plus up to MAX_CANDIDATES notes and
returns a JSON array of note ids. Any failure (not configured, quota, rate
limit, malformed output) falls back to substring matching on topic/subject.
"""
import json
import logging
from pathlib import Path
from sqlalchemy.orm import Session

from gyanshare.config import get_settings
from gyanshare.models.note import Note
from gyanshare.services.request_store import validate_category

logger = logging.getLogger(__name__)

MAX_CANDIDATES = 50
MAX_RESULTS = 10

# Lazy client to avoid import/credentials errors at import time
_gemini_client = None


def _get_client():
    global _gemini_client
    if _gemini_client is not None:
        return _gemini_client
    try:
        from google import genai
        from google.oauth2 import service_account
    except ImportError as e:
        raise RuntimeError(
            "Google GenAI not installed. pip install google-genai google-auth"
        ) from e

    settings = get_settings()
    if not settings.vertex_project_id:
        raise RuntimeError("vertex_project_id is not configured")

    credentials = None
    if settings.vertex_credentials_path:
        path = Path(settings.vertex_credentials_path)
        if path.is_file():
            credentials = service_account.Credentials.from_service_account_file(
                str(path),
                scopes=["https://www.googleapis.com/auth/cloud-platform"],
            )

    _gemini_client = genai.Client(
        vertexai=True,
        project=settings.vertex_project_id,
        location=settings.vertex_location,
        credentials=credentials,
    )
    return _gemini_client


SEARCH_SYSTEM_INSTRUCTION = """You are a helpful search assistant for an educational notes platform.
Analyze the user's question and match it with the most relevant notes from the list.
Return ONLY a JSON array of note IDs in order of relevance (most relevant first).
Maximum 10 results. Format: ["id1","id2","id3"]"""


def _candidate(note: Note) -> dict:
    return {
        "id": note.id,
        "topic": note.topic,
        "subject": note.subject,
        "category": note.category,
        "level": note.level,
        "tags": note.tags or [],
    }


def build_search_prompt(query: str, candidates: list[Note]) -> str:
    return (
        f'User question: "{query}"\n\n'
        f"Available notes: {json.dumps([_candidate(n) for n in candidates])}"
    )


def parse_ranked_ids(text: str) -> list[str]:
    """Model output -> list of ids. Tolerates a ```json fence; raises ValueError otherwise."""
    text = (text or "").strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
    ids = json.loads(text)
    if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
        raise ValueError("Model did not return a JSON array of ids")
    return ids


def generate_ranking(query: str, candidates: list[Note]) -> list[str]:
    """Call Gemini for ranked note ids. Raises on API, quota or parse errors."""
    client = _get_client()
    settings = get_settings()
    from google.genai.types import GenerateContentConfig

    response = client.models.generate_content(
        model=settings.gemini_model,
        contents=build_search_prompt(query, candidates),
        config=GenerateContentConfig(
            system_instruction=SEARCH_SYSTEM_INSTRUCTION,
            temperature=0.0,
            max_output_tokens=512,
        ),
    )
    if not response or not response.candidates:
        raise ValueError("Empty response from model")
    return parse_ranked_ids(getattr(response, "text", None) or "")


def substring_matches(query: str, candidates: list[Note]) -> list[str]:
    q = (query or "").strip().lower()
    return [n.id for n in candidates if q in n.topic.lower() or q in n.subject.lower()]


def rank_notes(query: str, candidates: list[Note], ranker=generate_ranking) -> list[Note]:
    """Ordered, de-duplicated notes (max MAX_RESULTS); unknown ids from the model are dropped."""
    try:
        ids = ranker(query, candidates)
    except Exception as e:
        logger.warning("AI search failed, falling back to substring match: %s", e)
        ids = substring_matches(query, candidates)
    by_id = {n.id: n for n in candidates}
    ordered = []
    for note_id in ids:
        note = by_id.pop(note_id, None)
        if note is not None:
            ordered.append(note)
    return ordered[:MAX_RESULTS]


def search_notes(
    db: Session,
    query: str,
    category: str | None = None,
    level: str | None = None,
    ranker=generate_ranking,
) -> list[Note]:
    q = db.query(Note)
    if category:
        q = q.filter(Note.category == validate_category(category).value)
    if level:
        q = q.filter(Note.level == level)
    candidates = q.order_by(Note.created_at.desc()).limit(MAX_CANDIDATES).all()
    if not candidates:
        return []
    return rank_notes(query, candidates, ranker=ranker)
