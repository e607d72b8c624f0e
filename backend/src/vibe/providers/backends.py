"""Per-backend request mapping and availability probes.

Each backend only knows how to address its model through LiteLLM and how to
check cheaply whether it is reachable. Prompting, segmenting and validation
are shared by LLMProvider.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path

import httpx

from vibe.llm import LLMClient

logger = logging.getLogger(__name__)

OPENAI_MODELS_URL = "https://api.openai.com/v1/models"
ANTHROPIC_MODELS_URL = "https://api.anthropic.com/v1/models"
ANTHROPIC_VERSION = "2023-06-01"


class ProviderBackend(ABC):
    """Connection details for one model backend."""

    provider_id: str
    display_name: str

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        endpoint: str | None = None,
    ) -> None:
        self.model = model
        self.api_key = api_key
        self.endpoint = endpoint

    def create_client(self, log_path: Path | None = None) -> LLMClient:
        """Build the LiteLLM client addressing this backend."""
        return LLMClient(
            provider=self.provider_id,
            model=self.model,
            api_key=self.api_key,
            endpoint=self.endpoint,
            log_path=log_path,
        )

    @abstractmethod
    async def probe(self, http: httpx.AsyncClient) -> bool:
        """Check whether the backend can serve requests.

        Args:
            http: Client to issue the probe request with.

        Returns:
            True if the backend answered positively.

        Raises:
            httpx.HTTPError: On transport failure (callers treat as unavailable).
        """
        pass


class OpenAIBackend(ProviderBackend):
    """Hosted OpenAI chat models."""

    provider_id = "openai"
    display_name = "OpenAI"

    async def probe(self, http: httpx.AsyncClient) -> bool:
        response = await http.get(
            OPENAI_MODELS_URL,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        if response.status_code != 200:
            return False
        return len(response.json().get("data", [])) > 0


class AnthropicBackend(ProviderBackend):
    """Hosted Anthropic models."""

    provider_id = "anthropic"
    display_name = "Anthropic"

    async def probe(self, http: httpx.AsyncClient) -> bool:
        response = await http.get(
            ANTHROPIC_MODELS_URL,
            headers={
                "x-api-key": self.api_key or "",
                "anthropic-version": ANTHROPIC_VERSION,
            },
        )
        return response.status_code == 200


class OllamaBackend(ProviderBackend):
    """Local Ollama server."""

    provider_id = "ollama"
    display_name = "Ollama"

    async def probe(self, http: httpx.AsyncClient) -> bool:
        """Available when the configured model is pulled on the local server."""
        response = await http.get(f"{(self.endpoint or '').rstrip('/')}/api/tags")
        if response.status_code != 200:
            return False
        names = [m.get("name", "") for m in response.json().get("models", [])]
        # Ollama reports tagged names, e.g. "codellama:latest"
        return any(name == self.model or name.split(":", 1)[0] == self.model for name in names)
