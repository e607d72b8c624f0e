"""Provider interface shared by every model backend."""

import math
from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator

from vibe.config import ConfigError, load_settings
from vibe.constants import CHARS_PER_TOKEN, MAX_PROMPT_CHARS, MIN_PROMPT_CHARS
from vibe.generation.segmenter import SegmentChunk
from vibe.providers.models import Fix, GenerationContext, PromptValidation


def _prompt_limits() -> tuple[int, int, int]:
    try:
        settings = load_settings()
        generation = settings.generation
        return generation.min_prompt_chars, generation.max_prompt_chars, generation.chars_per_token
    except (ValueError, OSError, ConfigError):
        return MIN_PROMPT_CHARS, MAX_PROMPT_CHARS, CHARS_PER_TOKEN


def suggest_prompt_improvements(prompt: str) -> list[str]:
    """Advisory hints for a prompt. They never affect validity."""
    lowered = prompt.lower()
    suggestions = []
    if not any(word in lowered for word in ("react", "vue", "javascript")):
        suggestions.append("Consider specifying the framework (React, Vue, or Vanilla JS)")
    if "style" not in lowered and "design" not in lowered:
        suggestions.append("You might want to specify styling preferences")
    return suggestions


def validate_prompt(prompt: str) -> PromptValidation:
    """Validate a prompt locally, without any network call.

    The result depends only on the prompt text.

    Args:
        prompt: Prompt to validate.

    Returns:
        PromptValidation with issues, token estimate and suggestions.
    """
    min_chars, max_chars, chars_per_token = _prompt_limits()
    issues = []

    if len(prompt) < min_chars:
        issues.append("Prompt is too short. Please provide more details.")

    if len(prompt) > max_chars:
        issues.append("Prompt is too long. Please be more concise.")

    return PromptValidation(
        is_valid=not issues,
        issues=issues,
        estimated_tokens=math.ceil(len(prompt) / chars_per_token),
        suggestions=suggest_prompt_improvements(prompt),
    )


class AIProvider(ABC):
    """Abstract base class for model providers."""

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Registry key (e.g., 'openai')."""
        pass

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable provider name."""
        pass

    @abstractmethod
    def generate_code(
        self, prompt: str, context: GenerationContext
    ) -> AsyncGenerator[SegmentChunk, None]:
        """Stream generated files and messages for a prompt.

        Never raises: failures arrive as a terminal ErrorChunk.
        """
        pass

    @abstractmethod
    async def explain_code(self, code: str, language: str) -> str:
        """Explain a piece of code.

        Raises:
            ProviderError: On network or upstream failure.
        """
        pass

    @abstractmethod
    async def suggest_fix(self, error: str, code: str, kind: str | None = None) -> Fix:
        """Suggest a fix for an error in a piece of code.

        Raises:
            ProviderError: On network or upstream failure.
        """
        pass

    @abstractmethod
    async def is_available(self) -> bool:
        """Cheap liveness probe. Never raises."""
        pass

    def validate_prompt(self, prompt: str) -> PromptValidation:
        """Validate a prompt locally."""
        return validate_prompt(prompt)
