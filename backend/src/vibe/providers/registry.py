"""Provider registry and selection policy."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from vibe.config import Config
from vibe.constants import PROVIDER_PRIORITY
from vibe.generation.errors import NoProviderAvailableError
from vibe.providers.adapter import LLMProvider
from vibe.providers.backends import AnthropicBackend, OllamaBackend, OpenAIBackend
from vibe.providers.base import AIProvider, validate_prompt
from vibe.providers.models import Fix, PromptValidation

logger = logging.getLogger(__name__)


@dataclass
class ProviderEntry:
    """A registered provider and the result of its latest probe."""

    provider: AIProvider
    last_available: Optional[bool] = None


class ProviderRegistry:
    """Registry that selects a provider for each request.

    Providers are registered once at start-up and never removed. Availability
    is probed on every selection; `last_available` only records the most
    recent answer.
    """

    def __init__(self, priority: tuple[str, ...] = PROVIDER_PRIORITY) -> None:
        self._entries: dict[str, ProviderEntry] = {}
        self._priority = priority

    def register(self, provider: AIProvider) -> None:
        """Register a provider under its provider_id."""
        self._entries[provider.provider_id] = ProviderEntry(provider=provider)
        logger.info(f"Registered AI provider: {provider.provider_id}")

    def get(self, provider_id: str) -> Optional[AIProvider]:
        entry = self._entries.get(provider_id)
        return entry.provider if entry else None

    def entry(self, provider_id: str) -> Optional[ProviderEntry]:
        return self._entries.get(provider_id)

    @property
    def provider_ids(self) -> list[str]:
        """Registered provider ids, in priority order."""
        ranked = [pid for pid in self._priority if pid in self._entries]
        return ranked + [pid for pid in self._entries if pid not in ranked]

    def __len__(self) -> int:
        return len(self._entries)

    async def _probe(self, provider_id: str) -> bool:
        entry = self._entries[provider_id]
        available = await entry.provider.is_available()
        entry.last_available = available
        return available

    async def select(self, preferred: Optional[str] = None) -> Optional[AIProvider]:
        """Pick a provider for a request.

        Args:
            preferred: Provider id requested by the caller, if any.

        Returns:
            The preferred provider when registered and available, otherwise the
            first available provider in priority order, or None.
        """
        if preferred and preferred in self._entries:
            if await self._probe(preferred):
                return self._entries[preferred].provider
            logger.info(f"Preferred provider {preferred} unavailable, falling back")

        for provider_id in self.provider_ids:
            if provider_id == preferred:
                continue
            if await self._probe(provider_id):
                return self._entries[provider_id].provider

        return None

    async def require(self, preferred: Optional[str] = None) -> AIProvider:
        """Like select(), but raise when nothing is available.

        Raises:
            NoProviderAvailableError: If no registered provider is available.
        """
        provider = await self.select(preferred)
        if provider is None:
            raise NoProviderAvailableError()
        return provider

    async def available_providers(self) -> list[str]:
        """Probe every registered provider concurrently.

        Returns:
            Ids of the providers that answered positively, in priority order.
        """
        ids = self.provider_ids
        results = await asyncio.gather(*(self._probe(pid) for pid in ids))
        return [pid for pid, ok in zip(ids, results) if ok]

    async def explain_code(
        self, code: str, language: str, preferred: Optional[str] = None
    ) -> tuple[AIProvider, str]:
        """Explain code with the selected provider.

        Returns:
            The provider used and its explanation.
        """
        provider = await self.require(preferred)
        return provider, await provider.explain_code(code, language)

    async def suggest_fix(
        self,
        error: str,
        code: str,
        kind: Optional[str] = None,
        preferred: Optional[str] = None,
    ) -> tuple[AIProvider, Fix]:
        """Suggest a fix with the selected provider.

        Returns:
            The provider used and its fix.
        """
        provider = await self.require(preferred)
        return provider, await provider.suggest_fix(error, code, kind)

    def validate_prompt(self, prompt: str) -> PromptValidation:
        """Validate a prompt without choosing a provider."""
        if not self._entries:
            return PromptValidation(is_valid=False, issues=["No AI provider available"])
        return validate_prompt(prompt)


def build_registry(settings: Config, log_path: Optional[Path] = None) -> ProviderRegistry:
    """Register the providers the configuration allows.

    Hosted providers need an API key; the local provider is always registered.
    """
    registry = ProviderRegistry()

    if settings.openai_api_key:
        registry.register(
            LLMProvider(
                OpenAIBackend(settings.openai_model, api_key=settings.openai_api_key),
                log_path=log_path,
            )
        )

    if settings.anthropic_api_key:
        registry.register(
            LLMProvider(
                AnthropicBackend(settings.anthropic_model, api_key=settings.anthropic_api_key),
                log_path=log_path,
            )
        )

    registry.register(
        LLMProvider(
            OllamaBackend(settings.ollama_model, endpoint=settings.ollama_endpoint),
            log_path=log_path,
        )
    )
    return registry
