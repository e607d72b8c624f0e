"""LiteLLM-based LLM client."""

import json
import logging
import time
from collections.abc import AsyncGenerator, Sequence
from datetime import datetime, timezone
from pathlib import Path

from litellm import acompletion
from litellm.exceptions import (
    APIConnectionError,
    APIError,
    AuthenticationError,
    RateLimitError,
)

from vibe.config import ConfigError, load_settings
from vibe.constants import DEFAULT_TEMPERATURE, MAX_TOKENS

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Base exception for model provider failures.

    The message carries the upstream error text.
    """

    code = "provider_error"


class ProviderConnectionError(ProviderError):
    """Raised when unable to connect to the model provider."""

    pass


class ProviderAuthenticationError(ProviderError):
    """Raised when authentication with the model provider fails."""

    pass


class ProviderRateLimitError(ProviderError):
    """Raised when rate limited by the model provider."""

    pass


# Response headers worth keeping in the query log
_RELEVANT_HEADERS = (
    "x-ratelimit-limit-requests",
    "x-ratelimit-limit-tokens",
    "x-ratelimit-remaining-requests",
    "x-ratelimit-remaining-tokens",
    "retry-after",
    "x-request-id",
    "request-id",
    "anthropic-ratelimit-requests-remaining",
)


def _translate_error(e: Exception) -> ProviderError:
    """Map a LiteLLM exception onto the ProviderError hierarchy."""
    if isinstance(e, AuthenticationError):
        return ProviderAuthenticationError(f"Authentication failed: {e}")
    if isinstance(e, RateLimitError):
        return ProviderRateLimitError(f"Rate limit exceeded: {e}")
    if isinstance(e, APIConnectionError):
        return ProviderConnectionError(f"Connection failed: {e}")
    return ProviderError(f"LLM API error: {e}")


class LLMClient:
    """Chat-completion client for one backend, via LiteLLM."""

    def __init__(
        self,
        provider: str,
        model: str,
        api_key: str | None = None,
        endpoint: str | None = None,
        log_path: Path | None = None,
    ):
        """Initialize LLM client.

        Args:
            provider: LiteLLM provider (openai, anthropic, ollama).
            model: Model name.
            api_key: Optional API key (uses env var if not provided).
            endpoint: Optional custom endpoint (for Ollama).
            log_path: Optional path to JSONL log file for query logging.
        """
        self.provider = provider
        self.model = model
        self.api_key = api_key
        self.endpoint = endpoint
        self.log_path = log_path

    def _log_query(
        self,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
        response: str | None,
        duration_ms: int,
        error: str | None,
        error_details: dict | None = None,
    ) -> None:
        """Append one call record to the JSONL log file."""
        if not self.log_path:
            return

        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "provider": self.provider,
            "model": self.model,
            "request": {
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
            "response": response,
            "duration_ms": duration_ms,
            "error": error,
        }

        if error_details:
            entry["error_details"] = error_details

        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry) + "\n")
        except OSError as e:
            # The query log is diagnostic only
            logger.warning(f"Could not write LLM query log {self.log_path}: {e}")

    def _extract_error_details(self, e: Exception) -> dict | None:
        """Extract HTTP details from LiteLLM exceptions.

        Returns:
            Dict with status_code, relevant headers and provider if available.
        """
        details: dict = {}

        if hasattr(e, "status_code"):
            details["status_code"] = e.status_code

        resp = getattr(e, "response", None)
        if resp is not None:
            if hasattr(resp, "status_code"):
                details["status_code"] = resp.status_code
            headers = getattr(resp, "headers", None)
            if headers is not None:
                relevant = {
                    k: v for k, v in dict(headers).items() if k.lower() in _RELEVANT_HEADERS
                }
                if relevant:
                    details["response_headers"] = relevant

        if hasattr(e, "llm_provider"):
            details["llm_provider"] = e.llm_provider

        return details if details else None

    def _get_model_string(self) -> str:
        """Get LiteLLM model string.

        Returns:
            Model string in provider/model format.
        """
        if self.provider == "openai":
            return self.model  # OpenAI is default
        return f"{self.provider}/{self.model}"

    def _resolve_sampling(
        self, temperature: float | None, max_tokens: int | None
    ) -> tuple[float, int]:
        if temperature is not None and max_tokens is not None:
            return temperature, max_tokens
        try:
            settings = load_settings()
            default_temperature = settings.generation.temperature
            default_max_tokens = settings.generation.max_tokens
        except (ValueError, OSError, ConfigError):
            default_temperature = DEFAULT_TEMPERATURE
            default_max_tokens = MAX_TOKENS
        return (
            default_temperature if temperature is None else temperature,
            default_max_tokens if max_tokens is None else max_tokens,
        )

    def _build_messages(
        self,
        prompt: str,
        system_prompt: str | None,
        history: Sequence[dict[str, str]] | None,
    ) -> list[dict[str, str]]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        if history:
            messages.extend({"role": m["role"], "content": m["content"]} for m in history)
        messages.append({"role": "user", "content": prompt})
        return messages

    def _build_kwargs(
        self, messages: list[dict[str, str]], temperature: float, max_tokens: int
    ) -> dict:
        kwargs = {
            "model": self._get_model_string(),
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.endpoint and self.provider == "ollama":
            kwargs["api_base"] = self.endpoint
        return kwargs

    async def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        history: Sequence[dict[str, str]] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Generate a completion for a prompt.

        Args:
            prompt: User prompt.
            system_prompt: Optional system prompt.
            history: Prior conversation turns sent before the prompt.
            temperature: Sampling temperature.
            max_tokens: Maximum response tokens.

        Returns:
            Generated text response.

        Raises:
            ProviderError: On any upstream failure.
        """
        temperature, max_tokens = self._resolve_sampling(temperature, max_tokens)
        messages = self._build_messages(prompt, system_prompt, history)
        kwargs = self._build_kwargs(messages, temperature, max_tokens)

        start_time = time.perf_counter()
        try:
            response = await acompletion(**kwargs)
        except (AuthenticationError, RateLimitError, APIConnectionError, APIError) as e:
            self._log_query(
                messages,
                temperature,
                max_tokens,
                response=None,
                duration_ms=int((time.perf_counter() - start_time) * 1000),
                error=str(e),
                error_details=self._extract_error_details(e),
            )
            raise _translate_error(e) from e

        result: str = str(response.choices[0].message.content or "")
        self._log_query(
            messages,
            temperature,
            max_tokens,
            response=result,
            duration_ms=int((time.perf_counter() - start_time) * 1000),
            error=None,
        )
        return result

    async def generate_stream(
        self,
        prompt: str,
        system_prompt: str | None = None,
        history: Sequence[dict[str, str]] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncGenerator[str, None]:
        """Generate a completion with streaming text increments.

        Args:
            prompt: User prompt.
            system_prompt: Optional system prompt.
            history: Prior conversation turns sent before the prompt.
            temperature: Sampling temperature.
            max_tokens: Maximum response tokens.

        Yields:
            Text increments as they are generated.

        Raises:
            ProviderError: On any upstream failure, including mid-stream.
        """
        temperature, max_tokens = self._resolve_sampling(temperature, max_tokens)
        messages = self._build_messages(prompt, system_prompt, history)
        kwargs = self._build_kwargs(messages, temperature, max_tokens)
        kwargs["stream"] = True

        start_time = time.perf_counter()
        accumulated: list[str] = []
        error_msg: str | None = None
        error_details: dict | None = None

        try:
            response = await acompletion(**kwargs)
            async for chunk in response:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    accumulated.append(content)
                    yield content
        except (AuthenticationError, RateLimitError, APIConnectionError, APIError) as e:
            error_msg = str(e)
            error_details = self._extract_error_details(e)
            raise _translate_error(e) from e
        finally:
            self._log_query(
                messages,
                temperature,
                max_tokens,
                response="".join(accumulated) if accumulated else None,
                duration_ms=int((time.perf_counter() - start_time) * 1000),
                error=error_msg,
                error_details=error_details,
            )
