"""Parsing of model text into structured article drafts."""

from __future__ import annotations

import json
from typing import Any

from ..core.types import ArticleDraft, FaqItem
from ..errors import MalformedOutput


def parse_json_response(content: str) -> dict[str, Any]:
    """Decode a JSON object from model output, tolerating fences and chatter."""
    if not content:
        raise json.JSONDecodeError("Empty content", content or "", 0)
    try:
        obj = json.loads(content)
    except json.JSONDecodeError:
        obj = json.loads(_extract_json_snippet(content))
    if not isinstance(obj, dict):
        raise json.JSONDecodeError("Top-level JSON value is not an object", content, 0)
    return obj


def _extract_json_snippet(content: str) -> str:
    fence = _extract_fenced_json(content)
    if fence:
        return fence
    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise json.JSONDecodeError("No JSON object found", content, 0)
    return content[start : end + 1]


def _extract_fenced_json(content: str) -> str | None:
    lines = content.splitlines()
    start_idx = None
    for idx, line in enumerate(lines):
        if line.strip().startswith("```") and "json" in line.lower():
            start_idx = idx + 1
            break
    if start_idx is None:
        return None
    for idx in range(start_idx, len(lines)):
        if lines[idx].strip().startswith("```"):
            snippet = "\n".join(lines[start_idx:idx]).strip()
            return snippet or None
    return None


def draft_from_content(provider: str, content: str) -> ArticleDraft:
    """Build an ArticleDraft from raw model text.

    Raises:
        MalformedOutput: Not JSON, or title/body missing or empty
    """
    try:
        obj = parse_json_response(content)
    except json.JSONDecodeError as exc:
        raise MalformedOutput(provider, f"response is not a JSON object: {exc.msg}") from exc

    title = _clean_str(obj.get("title"))
    body = _clean_str(obj.get("body"))
    if not title or not body:
        raise MalformedOutput(provider, "draft is missing title or body")

    return ArticleDraft(
        title=title,
        body=body,
        summary=_clean_str(obj.get("summary")),
        key_points=_str_list(obj.get("key_points")),
        faqs=_faq_list(obj.get("faqs")),
        tags=[tag.lower() for tag in _str_list(obj.get("tags"))],
    )


def _clean_str(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def _faq_list(value: Any) -> list[FaqItem]:
    if not isinstance(value, list):
        return []
    faqs: list[FaqItem] = []
    for item in value:
        if not isinstance(item, dict):
            continue
        question = _clean_str(item.get("question"))
        answer = _clean_str(item.get("answer"))
        if question and answer:
            faqs.append(FaqItem(question=question, answer=answer))
    return faqs
