"""Segment a raw model text stream into file and message chunks.

The model is asked to mark every file with a line of the form
``// File: <path>``. Everything after a marker, up to the next marker or the
end of the stream, is that file's content. Text before the first marker is
not part of any file and is dropped.
"""

import logging
import re
from collections.abc import AsyncGenerator
from contextlib import aclosing
from pathlib import PurePosixPath
from typing import Union

from vibe.constants import FILE_MARKER, PROGRESS_KEYWORDS
from vibe.llm import ProviderError
from vibe.providers.models import (
    CompleteChunk,
    ErrorChunk,
    FileChunk,
    MessageChunk,
)

logger = logging.getLogger(__name__)

FILE_MARKER_RE = re.compile(re.escape(FILE_MARKER) + r"(.+)\n")

LANGUAGE_BY_EXTENSION: dict[str, str] = {
    "ts": "typescript",
    "tsx": "typescript",
    "js": "javascript",
    "jsx": "javascript",
    "vue": "vue",
    "css": "css",
    "scss": "scss",
    "html": "html",
    "json": "json",
}

SegmentChunk = Union[FileChunk, MessageChunk, ErrorChunk, CompleteChunk]


def language_for_path(path: str) -> str:
    """Map a file path to a language tag by extension.

    Args:
        path: File path, e.g. ``src/App.tsx``.

    Returns:
        Language tag, ``plaintext`` for unknown extensions.
    """
    suffix = PurePosixPath(path).suffix.lstrip(".").lower()
    return LANGUAGE_BY_EXTENSION.get(suffix, "plaintext")


def _split_pending(text: str) -> tuple[str, str]:
    """Split text into a settled part and a tail that may still become a marker.

    The tail is either an unterminated marker line (``// File: src/a`` with no
    newline yet) or a suffix that is a prefix of the marker itself.
    """
    last_newline = text.rfind("\n")
    start = text.find(FILE_MARKER, last_newline + 1)
    if start != -1:
        return text[:start], text[start:]

    for size in range(min(len(FILE_MARKER) - 1, len(text)), 0, -1):
        if text.endswith(FILE_MARKER[:size]):
            return text[:-size], text[-size:]
    return text, ""


class StreamSegmenter:
    """Incremental parser from raw text increments to chunks.

    Feed increments with `feed()`, then call `finish()` once at the end of
    the stream. Neither method raises for any input.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._active_path: str | None = None
        self._active_parts: list[str] = []

    def _close_active(self) -> FileChunk:
        assert self._active_path is not None
        path = self._active_path
        chunk = FileChunk(
            path=path,
            content="".join(self._active_parts).strip(),
            language=language_for_path(path),
        )
        self._active_path = None
        self._active_parts = []
        return chunk

    def feed(self, text: str) -> list[SegmentChunk]:
        """Consume one text increment.

        Args:
            text: Raw text as received from the model.

        Returns:
            Chunks completed by this increment, in emission order.
        """
        chunks: list[SegmentChunk] = []
        self._buffer += text

        while (match := FILE_MARKER_RE.search(self._buffer)) is not None:
            if self._active_path is not None:
                self._active_parts.append(self._buffer[: match.start()])
                chunks.append(self._close_active())
            self._active_path = match.group(1).strip()
            self._active_parts = []
            self._buffer = self._buffer[match.end() :]

        settled, pending = _split_pending(self._buffer)
        if self._active_path is not None:
            self._active_parts.append(settled)
        # Without an active file the settled text precedes any marker and is dropped
        self._buffer = pending

        if any(keyword in text for keyword in PROGRESS_KEYWORDS):
            chunks.append(MessageChunk(message=text))

        return chunks

    def finish(self) -> list[SegmentChunk]:
        """Flush the last file and emit the terminal Complete chunk."""
        chunks: list[SegmentChunk] = []
        if self._active_path is not None:
            self._active_parts.append(self._buffer)
            chunks.append(self._close_active())
        self._buffer = ""
        chunks.append(CompleteChunk())
        return chunks


async def segment_stream(
    increments: AsyncGenerator[str, None],
    source: str = "Provider",
) -> AsyncGenerator[SegmentChunk, None]:
    """Turn a raw text stream into chunks ending in exactly one terminal chunk.

    Any exception raised by the stream becomes a single ErrorChunk and ends
    the sequence; Complete is only emitted when the stream ran to its end.

    Args:
        increments: Async generator of raw text increments.
        source: Name used to prefix error messages (e.g. ``OpenAI``).

    Yields:
        File, message and terminal chunks.
    """
    segmenter = StreamSegmenter()
    async with aclosing(increments):
        try:
            async for text in increments:
                for chunk in segmenter.feed(text):
                    yield chunk
        except Exception as e:
            code = e.code if isinstance(e, ProviderError) else "provider_error"
            logger.warning(f"{source} stream failed: {e}")
            yield ErrorChunk(message=f"{source} Error: {e}", code=code)
            return

    for chunk in segmenter.finish():
        yield chunk
