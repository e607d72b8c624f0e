"""Generic provider adapter over any ProviderBackend."""

import difflib
import logging
import re
from collections.abc import AsyncGenerator
from contextlib import aclosing
from pathlib import Path

import httpx

from vibe.config import ConfigError, load_settings
from vibe.constants import (
    EXPLAIN_MAX_TOKENS,
    EXPLAIN_TEMPERATURE,
    FIX_MAX_TOKENS,
    FIX_TEMPERATURE,
    HISTORY_TURNS,
    PROBE_TIMEOUT_SECONDS,
)
from vibe.generation.prompts import (
    EXPLAIN_SYSTEM_PROMPT,
    EXPLAIN_TEMPLATE,
    FIX_SYSTEM_PROMPT,
    get_system_prompt,
    render_app_prompt,
    render_fix_prompt,
)
from vibe.generation.segmenter import SegmentChunk, segment_stream
from vibe.llm import LLMClient, ProviderError
from vibe.providers.backends import ProviderBackend
from vibe.providers.base import AIProvider
from vibe.providers.models import Change, Fix, GenerationContext

logger = logging.getLogger(__name__)

CODE_BLOCK_RE = re.compile(r"```[\w+#.-]*\n([\s\S]*?)```")


def diff_changes(original: str, fixed: str) -> list[Change]:
    """List line-level changes turning `original` into `fixed`."""
    before = original.splitlines()
    after = fixed.splitlines()
    changes = []
    matcher = difflib.SequenceMatcher(a=before, b=after, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            continue
        for k in range(max(i2 - i1, j2 - j1)):
            changes.append(
                Change(
                    line=i1 + 1 if tag == "insert" else i1 + k + 1,
                    original=before[i1 + k] if i1 + k < i2 else "",
                    replacement=after[j1 + k] if j1 + k < j2 else "",
                )
            )
    return changes


def parse_fix(response: str, original_code: str) -> Fix:
    """Split a model's fix response into explanation and fixed code.

    The first fenced code block is taken as the fix and the text before it as
    the explanation. A response without a code block yields `parsed=False`
    and the original code, so callers can tell that nothing was extracted.
    """
    match = CODE_BLOCK_RE.search(response)
    if match is None:
        return Fix(explanation=response.strip(), code=original_code, parsed=False)

    fixed_code = match.group(1).strip()
    return Fix(
        explanation=response[: match.start()].strip(),
        code=fixed_code,
        changes=diff_changes(original_code, fixed_code),
    )


class LLMProvider(AIProvider):
    """Provider implementation shared by all backends.

    Renders prompts, calls the backend through LiteLLM and segments the raw
    stream into chunks.
    """

    def __init__(
        self,
        backend: ProviderBackend,
        client: LLMClient | None = None,
        log_path: Path | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            backend: Backend to address.
            client: Optional pre-built client (defaults to backend.create_client()).
            log_path: Optional JSONL query log path for the default client.
            transport: Optional httpx transport for availability probes.
        """
        self._backend = backend
        self._client = client or backend.create_client(log_path)
        self._transport = transport

    @property
    def provider_id(self) -> str:
        return self._backend.provider_id

    @property
    def display_name(self) -> str:
        return self._backend.display_name

    def _history_turns(self) -> int:
        try:
            return load_settings().generation.history_turns
        except (ValueError, OSError, ConfigError):
            return HISTORY_TURNS

    def _llm_params(self) -> tuple[float, int, float, int, float]:
        try:
            llm = load_settings().llm
            return (
                llm.explain_temperature,
                llm.explain_max_tokens,
                llm.fix_temperature,
                llm.fix_max_tokens,
                llm.probe_timeout_seconds,
            )
        except (ValueError, OSError, ConfigError):
            return (
                EXPLAIN_TEMPERATURE,
                EXPLAIN_MAX_TOKENS,
                FIX_TEMPERATURE,
                FIX_MAX_TOKENS,
                PROBE_TIMEOUT_SECONDS,
            )

    async def _raw_stream(self, prompt: str, context: GenerationContext) -> AsyncGenerator[str, None]:
        limit = self._history_turns()
        turns = context.prior_turns[-limit:] if limit else ()
        stream = self._client.generate_stream(
            render_app_prompt(prompt, context),
            system_prompt=get_system_prompt(context.framework),
            history=[turn.as_message() for turn in turns],
        )
        async with aclosing(stream):
            async for text in stream:
                yield text

    def generate_code(
        self, prompt: str, context: GenerationContext
    ) -> AsyncGenerator[SegmentChunk, None]:
        return segment_stream(self._raw_stream(prompt, context), source=self.display_name)

    async def explain_code(self, code: str, language: str) -> str:
        temperature, max_tokens, *_ = self._llm_params()
        try:
            explanation = await self._client.generate(
                EXPLAIN_TEMPLATE.render(language=language, code=code),
                system_prompt=EXPLAIN_SYSTEM_PROMPT,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except ProviderError as e:
            raise type(e)(f"Failed to explain code: {e}") from e
        return explanation or "Could not generate explanation."

    async def suggest_fix(self, error: str, code: str, kind: str | None = None) -> Fix:
        _, _, temperature, max_tokens, _ = self._llm_params()
        try:
            response = await self._client.generate(
                render_fix_prompt(error, code, kind),
                system_prompt=FIX_SYSTEM_PROMPT,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except ProviderError as e:
            raise type(e)(f"Failed to suggest fix: {e}") from e
        return parse_fix(response, code)

    async def is_available(self) -> bool:
        *_, timeout = self._llm_params()
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as http:
                return await self._backend.probe(http)
        except Exception as e:
            logger.info(f"{self.display_name} availability probe failed: {e}")
            return False
