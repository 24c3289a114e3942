"""Interpretation of tool results as lesson, environment or answer content."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional, Tuple

from .content_store import strip_code_fences
from .tools import (
    ANSWER_QUESTION_DIRECTLY,
    GENERATE_INTERACTIVE_ENVIRONMENT,
    GENERATE_LESSON_PLAN,
    UPDATE_INTERACTIVE_ENVIRONMENT,
)

ContentKind = Literal["lesson", "environment", "answer", "unknown"]

P5_CODE_RE = re.compile(r"\bfunction\s+(setup|draw)\s*\(|\bcreateCanvas\s*\(")
HTML_RE = re.compile(r"<\s*(h[1-6]|p|ul|ol|div|section|pre)\b", re.IGNORECASE)


@dataclass
class ContentUpdate:
    kind: ContentKind
    content: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


def _parse_json(result: Any) -> Tuple[bool, Optional[Dict[str, Any]]]:
    """Return whether the result is JSON, and the object if it is one."""
    if isinstance(result, dict):
        return True, result
    if not isinstance(result, str):
        return False, None
    try:
        parsed = json.loads(result)
    except ValueError:
        return False, None
    return True, (parsed if isinstance(parsed, dict) else None)


def kind_for_tool(tool_name: Optional[str]) -> ContentKind:
    name = tool_name or ""
    if GENERATE_LESSON_PLAN in name:
        return "lesson"
    if GENERATE_INTERACTIVE_ENVIRONMENT in name or UPDATE_INTERACTIVE_ENVIRONMENT in name:
        return "environment"
    if ANSWER_QUESTION_DIRECTLY in name:
        return "answer"
    return "unknown"


def _sniff_kind(data: Optional[Dict[str, Any]], text: str) -> ContentKind:
    if data is not None:
        if "code" in data:
            return "environment"
        if "content" in data:
            return "lesson"
        if "answer" in data:
            return "answer"
        return "unknown"
    if P5_CODE_RE.search(text):
        return "environment"
    if HTML_RE.search(text):
        return "lesson"
    return "unknown"


def classify_tool_result(tool_name: Optional[str], result: Any) -> ContentUpdate:
    """Decide what a tool result updates and extract the content.

    JSON objects are read by key and other JSON values carry no content. A
    result that is not JSON is used verbatim as long as it is a non-blank
    string.
    """
    is_json, data = _parse_json(result)
    raw = result if isinstance(result, str) else ""
    kind = kind_for_tool(tool_name)
    if kind == "unknown":
        kind = _sniff_kind(data, raw)

    key = {"lesson": "content", "environment": "code", "answer": "answer"}.get(kind)
    if key is None:
        return ContentUpdate(kind="unknown", data=data)

    if data is not None:
        value = data.get(key)
        content = value if isinstance(value, str) and value else None
    elif is_json:
        content = None
    else:
        content = raw if raw.strip() else None

    if kind == "environment" and content:
        content = strip_code_fences(content)
    return ContentUpdate(kind=kind, content=content, data=data)
