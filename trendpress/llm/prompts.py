"""Prompt loading and rendering helpers for generation providers."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from ..core.types import TopicContext


_PROMPT_DIR = Path(__file__).resolve().parent.parent / "prompts"


@lru_cache(maxsize=None)
def _load_template(name: str) -> str:
    path = _PROMPT_DIR / f"{name}.md"
    return path.read_text(encoding="utf-8").strip()


def _render_template(name: str, **values: str) -> str:
    return _load_template(name).format(**values)


def format_facts(context: TopicContext, max_chars: int) -> str:
    """Numbered fact block, trimmed so the whole block stays under max_chars."""
    blocks: list[str] = []
    used = 0
    for idx, fact in enumerate(context.facts, start=1):
        block = (
            f"[{idx}] {fact.title}\n"
            f"Source: {fact.source_id} ({fact.url})\n"
            f"Retrieved: {fact.scraped_at.strftime('%Y-%m-%d %H:%M UTC')}\n"
            f"{fact.excerpt}"
        )
        if not blocks:
            block = block[:max_chars]
        elif used + len(block) > max_chars:
            break
        blocks.append(block)
        used += len(block) + 2
    return "\n\n".join(blocks) or "(no facts)"


def build_article_prompt(context: TopicContext, max_chars: int) -> str:
    return _render_template(
        "article",
        label=context.label,
        category=context.category,
        related_symbol=context.related_symbol or "none",
        trending_score=f"{context.trending_score:.2f}",
        facts=format_facts(context, max_chars),
    )
