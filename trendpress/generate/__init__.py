"""Article generation stage: validation, enrichment and the generator."""

from .generator import ArticleGenerator, GenerateResult, TopicOutcome
from .validation import validate_topic

__all__ = ["ArticleGenerator", "GenerateResult", "TopicOutcome", "validate_topic"]
