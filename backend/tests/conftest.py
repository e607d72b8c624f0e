"""Shared pytest fixtures for all tests."""

import gc
from collections.abc import AsyncGenerator, Sequence
from typing import Optional

import pytest

from vibe.api.deps import get_settings
from vibe.config import load_settings
from vibe.db.connection import Database
from vibe.db.migrations import run_migrations
from vibe.db.projects import ProjectStore
from vibe.generation.segmenter import SegmentChunk, segment_stream
from vibe.providers.base import AIProvider
from vibe.providers.models import Fix, GenerationContext


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point settings at an empty data dir and drop provider credentials."""
    monkeypatch.setenv("VIBE_DATA_DIR", str(tmp_path / "vibe"))
    for name in ("OPENAI_API_KEY", "ANTHROPIC_API_KEY", "FRONTEND_URL"):
        monkeypatch.delenv(name, raising=False)
    load_settings.cache_clear()
    get_settings.cache_clear()
    yield
    load_settings.cache_clear()
    get_settings.cache_clear()
    gc.collect()


@pytest.fixture
def temp_db():
    """In-memory database with the production schema."""
    db = Database(":memory:")
    run_migrations(db)
    yield db
    db.close()


@pytest.fixture
def store(temp_db):
    return ProjectStore(temp_db)


@pytest.fixture
def project(store):
    """A React project owned by user-1."""
    return store.create_project("user-1", "Todo App", "react", project_id="proj-1")


class FakeProvider(AIProvider):
    """Scripted provider that runs its raw increments through the real segmenter."""

    def __init__(
        self,
        provider_id: str = "openai",
        increments: Sequence[str] = (),
        available: bool = True,
        fail_after: Optional[int] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self._provider_id = provider_id
        self.increments = list(increments)
        self.available = available
        self.fail_after = fail_after
        self.error = error or RuntimeError("connection reset")
        self.probes = 0
        self.prompts: list[tuple[str, GenerationContext]] = []
        self.consumed = 0
        self.closed = False

    @property
    def provider_id(self) -> str:
        return self._provider_id

    @property
    def display_name(self) -> str:
        return self._provider_id.capitalize()

    async def _raw(self) -> AsyncGenerator[str, None]:
        try:
            for i, text in enumerate(self.increments):
                if self.fail_after is not None and i >= self.fail_after:
                    raise self.error
                self.consumed += 1
                yield text
            if self.fail_after is not None and self.fail_after >= len(self.increments):
                raise self.error
        finally:
            self.closed = True

    def generate_code(
        self, prompt: str, context: GenerationContext
    ) -> AsyncGenerator[SegmentChunk, None]:
        self.prompts.append((prompt, context))
        return segment_stream(self._raw(), source=self.display_name)

    async def explain_code(self, code: str, language: str) -> str:
        return f"{language} code explained by {self._provider_id}"

    async def suggest_fix(self, error: str, code: str, kind: str | None = None) -> Fix:
        return Fix(explanation=f"fixed {error}", code=code.replace("1", "2"))

    async def is_available(self) -> bool:
        self.probes += 1
        return self.available


@pytest.fixture
def make_provider():
    """Factory for scripted providers."""
    return FakeProvider
