"""LLM client abstraction."""

from vibe.llm.client import (
    LLMClient,
    ProviderAuthenticationError,
    ProviderConnectionError,
    ProviderError,
    ProviderRateLimitError,
)

__all__ = [
    "LLMClient",
    "ProviderAuthenticationError",
    "ProviderConnectionError",
    "ProviderError",
    "ProviderRateLimitError",
]
