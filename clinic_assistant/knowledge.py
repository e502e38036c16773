"""Clinic knowledge document.

Loads ``clinic_knowledge.json`` (services, hours, policies, FAQ) once at
import time.  The whole document is small enough to be embedded verbatim in
every system prompt, so the model can answer factual questions without a
retrieval step.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_KNOWLEDGE_PATH = Path(__file__).resolve().parent / "clinic_knowledge.json"


def _load_knowledge(path: Path = _KNOWLEDGE_PATH) -> dict[str, Any]:
    """Read the knowledge file; a missing or broken file yields an empty document."""
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.warning("Clinic knowledge base not found at %s", path)
    except json.JSONDecodeError:
        logger.exception("Clinic knowledge base at %s is not valid JSON", path)
    return {}


_KNOWLEDGE: dict[str, Any] = _load_knowledge()
_SERIALIZED: str = json.dumps(_KNOWLEDGE, indent=2, ensure_ascii=False) if _KNOWLEDGE else ""


def get_clinic_knowledge() -> dict[str, Any]:
    return _KNOWLEDGE


def get_serialized_knowledge() -> str:
    """Return the knowledge document as pretty-printed JSON (prompt injection)."""
    return _SERIALIZED
