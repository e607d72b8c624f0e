"""Generation orchestrator: ties a request to a provider, storage and the channel.

A run moves through ``IDLE -> CONTEXT_BUILT -> STREAMING -> PERSISTING -> DONE``.
``ERRORED`` is reachable from streaming and persisting; ``CANCELLED`` is entered
when the consumer stops reading before the terminal chunk.
"""

import asyncio
import logging
import sqlite3
from collections.abc import AsyncGenerator
from contextlib import aclosing
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from vibe.channels import Broadcaster, ChannelEvent, project_topic
from vibe.constants import CONTEXT_TURNS
from vibe.db.projects import ProjectRecord, ProjectStore
from vibe.generation.context import build_context
from vibe.generation.errors import InvalidPromptError, NotFoundError, PersistenceError
from vibe.generation.segmenter import SegmentChunk
from vibe.providers.base import AIProvider
from vibe.providers.models import (
    CompleteChunk,
    DesignTokens,
    ErrorChunk,
    FileChunk,
    GeneratedFile,
    GenerationContext,
    MessageChunk,
    PromptValidation,
    TurnRole,
    is_terminal,
)
from vibe.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)

GENERATION_START_EVENT = "generation-start"


class RunState(str, Enum):
    """Lifecycle of one generation run."""

    IDLE = "idle"
    CONTEXT_BUILT = "context_built"
    STREAMING = "streaming"
    PERSISTING = "persisting"
    DONE = "done"
    ERRORED = "errored"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class GenerateRequest:
    """Input of a generation run."""

    project_id: str
    prompt: str
    user_id: str
    provider: Optional[str] = None
    design_tokens: Optional[DesignTokens] = None


def summarize(file_count: int, framework: str) -> str:
    """Assistant turn content used when the model produced no narration."""
    return f"Generated {file_count} files for your {framework} application."


class GenerationRun:
    """One accepted generation request, ready to stream.

    Iterate `events()` exactly once. Every chunk is published to the project's
    topic before it is yielded to the caller.
    """

    def __init__(
        self,
        store: ProjectStore,
        broadcaster: Broadcaster,
        project: ProjectRecord,
        provider: AIProvider,
        context: GenerationContext,
        prompt: str,
        validation: PromptValidation,
    ) -> None:
        self._store = store
        self._broadcaster = broadcaster
        self.project = project
        self.provider = provider
        self.context = context
        self.prompt = prompt
        self.validation = validation
        self._topic = project_topic(project.id)
        self._started = False
        self.state = RunState.CONTEXT_BUILT
        self.files: dict[str, GeneratedFile] = {}
        self.narration = ""

    def _transition(self, state: RunState) -> None:
        logger.info(f"Run for project {self.project.id}: {self.state.value} -> {state.value}")
        self.state = state

    def _publish(self, event: str, data: dict[str, Any]) -> None:
        self._broadcaster.publish(self._topic, ChannelEvent(event=event, data=data))

    def _publish_chunk(self, chunk: SegmentChunk) -> None:
        self._publish(chunk.type, chunk.model_dump())

    def _record_failure(self, message: str) -> None:
        # Never let this write replace the original error
        try:
            self._store.add_turn(
                self.project.id,
                TurnRole.ASSISTANT,
                f"Error: {message}",
                {"provider": self.provider.provider_id, "error": True},
            )
        except sqlite3.Error as e:
            logger.error(f"Failed to record failure turn for project {self.project.id}: {e}")

    def _accumulate(self, chunk: SegmentChunk) -> None:
        if isinstance(chunk, FileChunk):
            self.files[chunk.path] = GeneratedFile(
                path=chunk.path, content=chunk.content, language=chunk.language
            )
        elif isinstance(chunk, MessageChunk):
            self.narration += chunk.message + "\n"

    def _persist(self) -> None:
        content = self.narration or summarize(len(self.files), self.context.framework.value)
        metadata = {
            "provider": self.provider.provider_id,
            "filesGenerated": len(self.files),
            "tokens": self.validation.estimated_tokens,
        }
        try:
            self._store.save_generation(
                self.project.id, list(self.files.values()), content, metadata
            )
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to save generated files: {e}") from e

    async def events(self) -> AsyncGenerator[SegmentChunk, None]:
        """Stream the run's chunks, persisting on success.

        Yields File and Message chunks as they arrive and exactly one terminal
        chunk. An Error chunk from the provider ends the run without writing
        any files. Complete is only yielded after the files and the assistant
        turn are stored.

        Raises:
            PersistenceError: If storing a successful run failed. An Error
                chunk has already been published to the channel.
        """
        if self._started:
            raise RuntimeError("A generation run can only be streamed once")
        self._started = True

        self._publish(
            GENERATION_START_EVENT,
            {
                "projectId": self.project.id,
                "prompt": self.prompt,
                "provider": self.provider.provider_id,
            },
        )
        self._transition(RunState.STREAMING)

        terminal: Optional[SegmentChunk] = None
        stream = self.provider.generate_code(self.prompt, self.context)
        try:
            async with aclosing(stream):
                async for chunk in stream:
                    if is_terminal(chunk):
                        terminal = chunk
                        break
                    self._publish_chunk(chunk)
                    yield chunk
                    self._accumulate(chunk)
        except (asyncio.CancelledError, GeneratorExit):
            logger.info(
                f"Run for project {self.project.id} cancelled, "
                f"discarding {len(self.files)} staged file(s)"
            )
            self._transition(RunState.CANCELLED)
            raise
        except Exception as e:
            logger.exception(f"Generation run for project {self.project.id} failed")
            self._record_failure(str(e))
            self._transition(RunState.ERRORED)
            raise

        if not isinstance(terminal, CompleteChunk):
            error = terminal or ErrorChunk(message="Provider stream ended without completing")
            logger.warning(f"Generation failed for project {self.project.id}: {error.message}")
            # The run is settled before the consumer sees its last chunk
            self._record_failure(error.message)
            self._transition(RunState.ERRORED)
            self._publish_chunk(error)
            yield error
            return

        self._transition(RunState.PERSISTING)
        try:
            self._persist()
        except PersistenceError as e:
            logger.error(f"Run for project {self.project.id}: {e}")
            self._publish_chunk(ErrorChunk(message=str(e), code=e.code))
            self._record_failure(str(e))
            self._transition(RunState.ERRORED)
            raise

        self._transition(RunState.DONE)
        self._publish_chunk(terminal)
        yield terminal


class GenerationOrchestrator:
    """Accepts generation requests and prepares runs.

    Everything that can reject a request (ownership, provider selection,
    prompt validation) happens in `start()`, before any write and before a
    stream is opened.
    """

    def __init__(
        self,
        store: ProjectStore,
        registry: ProviderRegistry,
        broadcaster: Broadcaster,
        context_turns: int = CONTEXT_TURNS,
    ) -> None:
        self._store = store
        self._registry = registry
        self._broadcaster = broadcaster
        self._context_turns = context_turns

    async def start(self, request: GenerateRequest) -> GenerationRun:
        """Validate a request and return a run ready to stream.

        The user's prompt is stored as a turn once the request is accepted.

        Raises:
            NotFoundError: If the project does not exist or is not owned by the user.
            NoProviderAvailableError: If no provider is available.
            InvalidPromptError: If the prompt fails validation.
        """
        project = self._store.get_owned_project(request.project_id, request.user_id)
        if project is None:
            raise NotFoundError(f"Project {request.project_id} not found")

        files = self._store.list_files(project.id)
        turns = self._store.recent_turns(project.id, self._context_turns)
        context = build_context(project, files, turns, request.design_tokens)

        provider = await self._registry.require(request.provider)
        validation = provider.validate_prompt(request.prompt)
        if not validation.is_valid:
            raise InvalidPromptError(validation)

        self._store.add_turn(project.id, TurnRole.USER, request.prompt)
        logger.info(
            f"Accepted generation for project {project.id} with provider {provider.provider_id}"
        )
        return GenerationRun(
            self._store,
            self._broadcaster,
            project,
            provider,
            context,
            request.prompt,
            validation,
        )
