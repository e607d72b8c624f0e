"""Errors raised by a generation run before or after streaming."""

from vibe.providers.models import PromptValidation


class GenerationError(Exception):
    """Base exception for generation failures.

    `code` is a stable identifier reported to clients alongside the message.
    """

    code = "generation_error"


class NotFoundError(GenerationError):
    """Project does not exist or is not owned by the requesting user."""

    code = "not_found"


class InvalidPromptError(GenerationError):
    """Prompt failed local validation."""

    code = "invalid_prompt"

    def __init__(self, validation: PromptValidation) -> None:
        self.validation = validation
        super().__init__(f"Invalid prompt: {', '.join(validation.issues)}")


class NoProviderAvailableError(GenerationError):
    """No registered provider answered its availability probe."""

    code = "no_provider_available"

    def __init__(self, message: str = "No AI provider available") -> None:
        super().__init__(message)


class PersistenceError(GenerationError):
    """Generated output could not be stored."""

    code = "persistence_error"
