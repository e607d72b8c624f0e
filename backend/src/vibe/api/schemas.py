"""Pydantic schemas for API requests and responses."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from vibe.providers.models import Change, DesignTokens


class DesignTokensIn(BaseModel):
    """Design system values sent with a generation request."""

    primary: str
    secondary: str
    font_family: str = Field(..., alias="fontFamily")
    spacing: str

    model_config = {"populate_by_name": True}

    def to_tokens(self) -> DesignTokens:
        return DesignTokens(
            primary=self.primary,
            secondary=self.secondary,
            font_family=self.font_family,
            spacing=self.spacing,
        )


class GenerateBody(BaseModel):
    """Request to generate code for a project."""

    project_id: str = Field(..., alias="projectId")
    prompt: str
    provider: Optional[str] = Field(None, description="Preferred provider id")
    design_tokens: Optional[DesignTokensIn] = Field(None, alias="designTokens")

    model_config = {"populate_by_name": True}


class ExplainBody(BaseModel):
    """Request to explain a piece of code."""

    code: str
    language: str
    provider: Optional[str] = None


class ExplainResponse(BaseModel):
    explanation: str
    provider: str


class FixBody(BaseModel):
    """Request to fix an error in a piece of code."""

    error: str
    code: str
    kind: Optional[str] = Field(None, description="syntax, type, runtime or build")
    provider: Optional[str] = None


class FixResponse(BaseModel):
    explanation: str
    code: str
    changes: list[Change] = Field(default_factory=list)
    parsed: bool = True
    provider: str


class ValidateBody(BaseModel):
    prompt: str


class ValidateResponse(BaseModel):
    """Prompt validation result, in the client's field names."""

    is_valid: bool = Field(..., serialization_alias="isValid")
    issues: list[str] = Field(default_factory=list)
    estimated_tokens: int = Field(0, serialization_alias="estimatedTokens")
    suggestions: list[str] = Field(default_factory=list)


class ProvidersResponse(BaseModel):
    """Registered providers and those currently available."""

    registered: list[str]
    available: list[str]


class TurnOut(BaseModel):
    """A stored conversation turn."""

    id: int
    role: str
    content: str
    metadata: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = None


class CodeUpdateBody(BaseModel):
    """An editor change to relay to other listeners of the project."""

    path: str
    content: str


class CodeUpdateResponse(BaseModel):
    delivered: int
