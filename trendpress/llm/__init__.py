"""Article generation providers, prompts and response parsing."""

from .parsing import draft_from_content, parse_json_response
from .prompts import build_article_prompt
from .providers import (
    GeminiProvider,
    GenerationProvider,
    OpenAICompatibleProvider,
    available_providers,
    create_provider,
)

__all__ = [
    "GenerationProvider",
    "GeminiProvider",
    "OpenAICompatibleProvider",
    "available_providers",
    "build_article_prompt",
    "create_provider",
    "draft_from_content",
    "parse_json_response",
]
