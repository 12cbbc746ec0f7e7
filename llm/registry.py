"""
Provider Registry

Explicit mapping from the model identifiers users pick to provider
instances. Built once at startup and passed to whatever needs a model.
"""
import logging
from typing import Dict, List

from core.config import Settings
from llm.providers import AnthropicProvider, GeminiProvider, LLMProvider, OpenAIProvider
from proposals.errors import ProposalErrorBuilder, ProviderError

logger = logging.getLogger(__name__)

# Model identifier shown to users -> model name sent to the provider
OPENAI_MODELS = {"gpt-5-chat-latest": "gpt-5-chat-latest", "gpt-4o": "gpt-4o"}
ANTHROPIC_MODELS = {"claude-4.5-sonnet": "claude-sonnet-4-5"}
GEMINI_MODELS = {"gemini-2.5-pro": "gemini-2.5-pro"}


class ProviderRegistry:
    """Model identifier -> LLMProvider."""

    def __init__(self):
        self._providers: Dict[str, LLMProvider] = {}

    def register(self, model_id: str, provider: LLMProvider) -> None:
        self._providers[model_id] = provider
        logger.debug(f"[ProviderRegistry] Registered {model_id} -> {type(provider).__name__}")

    def get(self, model_id: str) -> LLMProvider:
        try:
            return self._providers[model_id]
        except KeyError:
            raise ProviderError(ProposalErrorBuilder.unknown_model(model_id, self.available_models))

    @property
    def available_models(self) -> List[str]:
        return sorted(self._providers)

    def __contains__(self, model_id: str) -> bool:
        return model_id in self._providers

    async def generate(self, model_id: str, system_prompt: str, messages: List[Dict[str, str]]) -> str:
        """
        Call the provider registered for model_id.

        Raises:
            ProviderError: unknown model, or the provider call failed
        """
        provider = self.get(model_id)
        try:
            return await provider.generate(system_prompt, messages)
        except ProviderError:
            raise
        except Exception as e:
            logger.error(f"[ProviderRegistry] {model_id} failed: {e}", exc_info=True)
            raise ProviderError(ProposalErrorBuilder.provider_error(model_id, str(e))) from e


def build_registry(settings: Settings) -> ProviderRegistry:
    """Register a provider for every model whose API key is configured."""
    registry = ProviderRegistry()
    if settings.openai_api_key:
        for model_id, model_name in OPENAI_MODELS.items():
            registry.register(
                model_id,
                OpenAIProvider(model_name, api_key=settings.openai_api_key, base_url=settings.openai_base_url),
            )
    if settings.anthropic_api_key:
        for model_id, model_name in ANTHROPIC_MODELS.items():
            registry.register(model_id, AnthropicProvider(model_name, api_key=settings.anthropic_api_key))
    if settings.gemini_api_key:
        for model_id, model_name in GEMINI_MODELS.items():
            registry.register(model_id, GeminiProvider(model_name, api_key=settings.gemini_api_key))

    if not registry.available_models:
        logger.warning("[build_registry] No LLM API keys configured; no models are available")
    return registry
