"""Build the immutable GenerationContext for one request."""

import json
import logging
from collections.abc import Sequence
from typing import Optional

from vibe.db.projects import ProjectRecord, TurnRecord
from vibe.providers.models import (
    DesignTokens,
    ExistingFile,
    FrameworkKind,
    GenerationContext,
)

logger = logging.getLogger(__name__)

PACKAGE_MANIFEST = "package.json"

DEFAULT_DEPENDENCIES: dict[FrameworkKind, tuple[str, ...]] = {
    FrameworkKind.REACT: ("react", "react-dom", "react-router-dom", "axios"),
    FrameworkKind.VUE: ("vue", "vue-router", "pinia", "axios"),
    FrameworkKind.VANILLA: (),
}


def parse_framework(value: str) -> FrameworkKind:
    """Map a stored framework name to FrameworkKind, defaulting to React."""
    try:
        return FrameworkKind(value.lower())
    except ValueError:
        logger.warning(f"Unknown framework {value!r}, using react")
        return FrameworkKind.REACT


def extract_dependencies(
    files: Sequence[ExistingFile], framework: FrameworkKind
) -> tuple[str, ...]:
    """Dependency names of a project.

    Uses the keys of ``dependencies`` in the project's package.json when it
    exists and parses, even when that leaves none. A missing or unparseable
    manifest falls back to the framework's default set.
    """
    manifest = next((f for f in files if f.path == PACKAGE_MANIFEST), None)

    if manifest is not None:
        try:
            data = json.loads(manifest.content)
        except json.JSONDecodeError:
            logger.debug(f"Ignoring unparseable {manifest.path}")
        else:
            deps = data.get("dependencies") if isinstance(data, dict) else None
            return tuple(deps) if isinstance(deps, dict) else ()

    return DEFAULT_DEPENDENCIES[framework]


def build_context(
    project: ProjectRecord,
    files: Sequence[ExistingFile],
    turns_newest_first: Sequence[TurnRecord],
    design_tokens: Optional[DesignTokens] = None,
) -> GenerationContext:
    """Assemble the context for a generation run.

    Args:
        project: The owned project.
        files: The project's stored files.
        turns_newest_first: Prior turns as fetched from storage, newest first.
        design_tokens: Optional design system for the generated UI.

    Returns:
        GenerationContext with prior turns in chronological order.
    """
    framework = parse_framework(project.framework)
    return GenerationContext(
        framework=framework,
        project_name=project.name,
        dependencies=extract_dependencies(files, framework),
        existing_files=tuple(files),
        prior_turns=tuple(turn.to_turn() for turn in reversed(turns_newest_first)),
        design_tokens=design_tokens,
    )
