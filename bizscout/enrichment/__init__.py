"""bizscout.enrichment: model-based enrichment of extracted business fields."""

from bizscout.enrichment.enricher import Enricher, build_prompt, extract_json, validate_enrichment
from bizscout.enrichment.llm import ModelProvider, OpenRouterClient

__all__ = [
    "Enricher",
    "ModelProvider",
    "OpenRouterClient",
    "build_prompt",
    "extract_json",
    "validate_enrichment",
]
