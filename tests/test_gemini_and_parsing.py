"""Regression tests for provider response parsing and draft building."""

from __future__ import annotations

import json

import pytest

from conftest import NOW

from trendpress.config import GenerationConfig
from trendpress.core.types import Fact, TopicContext
from trendpress.errors import MalformedOutput, ProviderError
from trendpress.llm.parsing import draft_from_content, parse_json_response
from trendpress.llm.prompts import build_article_prompt, format_facts
from trendpress.llm.providers import gemini as gemini_module
from trendpress.llm.providers import openai_compatible as openai_module
from trendpress.llm.providers.gemini import GeminiProvider, _extract_text


def _context(facts: int = 2) -> TopicContext:
    return TopicContext(
        label="Gold Price Updates",
        category="metals",
        related_symbol="gold",
        facts=[
            Fact(
                title=f"Gold report {i}",
                url=f"https://wire{i}.example.com/gold",
                source_id=f"wire-{i}",
                excerpt="Gold rose 1.2% on safe-haven demand.",
                scraped_at=NOW,
            )
            for i in range(facts)
        ],
        trending_score=3.5,
    )


_DRAFT = {
    "title": "Gold climbs on safe-haven demand",
    "body": "Gold rose 1.2% today.\n\nTraders cited safe-haven demand.",
    "summary": "Gold rose on safe-haven demand.",
    "key_points": ["Gold up 1.2%", "  ", 7],
    "faqs": [{"question": "Why?", "answer": "Safe-haven demand."}, {"question": "No answer"}],
    "tags": ["Gold", "Metals"],
}


def test_extract_text_joins_non_thought_parts():
    data = {
        "candidates": [
            {
                "content": {
                    "parts": [
                        {"thought": True, "text": "internal reasoning"},
                        {"text": '{"title": "A"'},
                        {"text": ', "body": "B"}'},
                    ]
                }
            }
        ]
    }

    assert _extract_text(data) == '{"title": "A", "body": "B"}'


def test_extract_text_falls_back_to_all_text_when_only_thought():
    data = {
        "candidates": [
            {
                "content": {
                    "parts": [
                        {"thought": True, "text": "first"},
                        {"thought": True, "text": " second"},
                    ]
                }
            }
        ]
    }

    assert _extract_text(data) == "first second"


def test_extract_text_handles_missing_candidates():
    assert _extract_text({"promptFeedback": {"blockReason": "SAFETY"}}) == ""


def test_extract_text_skips_null_text_parts():
    data = {"candidates": [{"content": {"parts": [{"text": None}, {"inlineData": {}}, {"text": '{"title": "A"}'}]}}]}
    assert _extract_text(data) == '{"title": "A"}'
    assert _extract_text({"candidates": [{"content": {"parts": [{"text": None}]}}]}) == ""
    assert _extract_text({"candidates": [{"content": {"parts": None}}]}) == ""


def test_parse_json_response_tolerates_fences_and_chatter():
    fenced = "Here you go:\n```json\n{\"title\": \"A\"}\n```\nThanks"
    chatter = 'Sure! {"title": "B"} hope this helps'
    assert parse_json_response(fenced) == {"title": "A"}
    assert parse_json_response(chatter) == {"title": "B"}


def test_parse_json_response_rejects_non_objects():
    with pytest.raises(json.JSONDecodeError):
        parse_json_response("[1, 2, 3]")


def test_draft_from_content_normalizes_fields():
    draft = draft_from_content("gemini", json.dumps(_DRAFT))

    assert draft.title == "Gold climbs on safe-haven demand"
    assert draft.key_points == ["Gold up 1.2%"]
    assert [faq.question for faq in draft.faqs] == ["Why?"]
    assert draft.tags == ["gold", "metals"]


@pytest.mark.parametrize("content", ["not json at all", '{"title": "Only title"}', '{"title": "", "body": "x"}'])
def test_draft_from_content_rejects_unusable_output(content):
    with pytest.raises(MalformedOutput) as info:
        draft_from_content("gemini", content)
    assert info.value.reason == "malformed_output"


def test_prompt_contains_topic_and_numbered_facts():
    prompt = build_article_prompt(_context(), max_chars=6000)

    assert "Topic: Gold Price Updates" in prompt
    assert "Related instrument: gold" in prompt
    assert "Trending score: 3.50" in prompt
    assert "[1] Gold report 0" in prompt
    assert "[2] Gold report 1" in prompt
    assert '{"title": string' in prompt


def test_format_facts_respects_budget():
    block = format_facts(_context(facts=10), max_chars=300)
    assert "[1]" in block
    assert "[10]" not in block
    assert len(block) <= 300


def test_gemini_provider_builds_draft(monkeypatch):
    captured = {}

    def fake_post_json(provider, url, payload, timeout, trust_env, params=None, headers=None):
        captured.update(url=url, payload=payload, params=params)
        return {"candidates": [{"content": {"parts": [{"text": json.dumps(_DRAFT)}]}}]}

    monkeypatch.setattr(gemini_module, "post_json", fake_post_json)
    provider = GeminiProvider(GenerationConfig(), "g-key")

    draft = provider.generate(_context())

    assert draft.title == _DRAFT["title"]
    assert captured["url"].endswith("/v1beta/models/gemini-2.5-flash:generateContent")
    assert captured["params"] == {"key": "g-key"}
    assert captured["payload"]["generationConfig"]["responseMimeType"] == "application/json"


def test_gemini_provider_propagates_provider_errors(monkeypatch):
    def failing_post_json(*args, **kwargs):
        raise ProviderError("gemini", "HTTP 429", reason="quota")

    monkeypatch.setattr(gemini_module, "post_json", failing_post_json)
    provider = GeminiProvider(GenerationConfig(), "g-key")

    with pytest.raises(ProviderError) as info:
        provider.generate(_context())
    assert info.value.reason == "quota"


def test_openai_provider_reads_message_content(monkeypatch):
    captured = {}

    def fake_post_json(provider, url, payload, timeout, trust_env, params=None, headers=None):
        captured.update(url=url, headers=headers, model=payload["model"])
        return {"choices": [{"message": {"content": json.dumps(_DRAFT)}}]}

    monkeypatch.setattr(openai_module, "post_json", fake_post_json)
    provider = openai_module.OpenAICompatibleProvider(
        GenerationConfig(name="openai", model="gpt-4.1-mini", base_url="https://api.openai.com/v1"),
        "o-key",
    )

    draft = provider.generate(_context())

    assert draft.summary == _DRAFT["summary"]
    assert captured["url"] == "https://api.openai.com/v1/chat/completions"
    assert captured["headers"] == {"Authorization": "Bearer o-key"}
    assert captured["model"] == "gpt-4.1-mini"
