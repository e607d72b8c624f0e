"""Data types shared by providers, the stream segmenter and the orchestrator."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field

from vibe.constants import COMPLETE_MESSAGE


class FrameworkKind(str, Enum):
    """Front-end framework a project is generated for."""

    REACT = "react"
    VUE = "vue"
    VANILLA = "vanilla"


class TurnRole(str, Enum):
    """Author of a conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ExistingFile:
    """A file already stored for the project."""

    path: str
    content: str
    language: str


@dataclass(frozen=True)
class Turn:
    """One message of a project's conversation history."""

    role: TurnRole
    content: str

    def as_message(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class DesignTokens:
    """Design-system values the generated UI should follow."""

    primary: str
    secondary: str
    font_family: str
    spacing: str


@dataclass(frozen=True)
class GenerationContext:
    """Everything a provider needs besides the prompt.

    Built once per request and never mutated afterwards.
    """

    framework: FrameworkKind
    project_name: str
    dependencies: tuple[str, ...] = ()
    existing_files: tuple[ExistingFile, ...] = ()
    prior_turns: tuple[Turn, ...] = ()
    design_tokens: Optional[DesignTokens] = None


# =============================================================================
# Stream chunks
# =============================================================================


class FileChunk(BaseModel):
    """A complete generated file."""

    type: Literal["file"] = "file"
    path: str
    content: str
    language: str


class MessageChunk(BaseModel):
    """Narration text emitted while generating."""

    type: Literal["message"] = "message"
    message: str


class ErrorChunk(BaseModel):
    """Terminal failure of a generation run."""

    type: Literal["error"] = "error"
    message: str
    code: str = "provider_error"


class CompleteChunk(BaseModel):
    """Terminal success of a generation run."""

    type: Literal["complete"] = "complete"
    message: str = COMPLETE_MESSAGE


TERMINAL_CHUNK_TYPES = (ErrorChunk, CompleteChunk)


def is_terminal(chunk: BaseModel) -> bool:
    """True for the chunk types that end a stream."""
    return isinstance(chunk, TERMINAL_CHUNK_TYPES)


# =============================================================================
# Auxiliary call results
# =============================================================================


class Change(BaseModel):
    """One changed line between the original and the fixed code."""

    file: str = Field("", description="File the change applies to, if known")
    line: int = Field(..., description="1-based line number in the original code")
    original: str = Field(..., description="Original line (empty for insertions)")
    replacement: str = Field(..., description="Replacement line (empty for deletions)")


class Fix(BaseModel):
    """A suggested fix for a code error."""

    explanation: str
    code: str
    changes: list[Change] = Field(default_factory=list)
    parsed: bool = Field(
        True,
        description="False when the response had no code block and code is the original",
    )


class PromptValidation(BaseModel):
    """Result of local prompt validation."""

    is_valid: bool
    issues: list[str] = Field(default_factory=list)
    estimated_tokens: int = 0
    suggestions: list[str] = Field(default_factory=list)


@dataclass
class GeneratedFile:
    """A file staged for persistence, keyed by path within a project."""

    path: str
    content: str
    language: str = field(default="plaintext")
