"""FastAPI dependency injection functions."""

from functools import lru_cache

from fastapi import Depends, Header, HTTPException, status

from vibe.channels import Broadcaster, get_broadcaster
from vibe.config import Settings, load_settings
from vibe.db.connection import Database
from vibe.db.migrations import run_migrations
from vibe.db.projects import ProjectStore
from vibe.generation.orchestrator import GenerationOrchestrator
from vibe.providers.registry import ProviderRegistry, build_registry


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return load_settings()


_db_instance: Database | None = None


def get_db() -> Database:
    """Get database connection with migrations applied."""
    global _db_instance

    settings = get_settings()

    # Check if cached connection is stale (db file was deleted)
    if _db_instance is not None and not settings.db_path.exists():
        _db_instance.close()
        _db_instance = None

    if _db_instance is None:
        _db_instance = Database(settings.db_path)
        run_migrations(_db_instance)
    return _db_instance


def _reset_db_instance() -> None:
    """Reset database instance (for testing only)."""
    global _db_instance
    if _db_instance is not None:
        _db_instance.close()
        _db_instance = None


def get_store(db: Database = Depends(get_db)) -> ProjectStore:
    """Get project store over the application database."""
    return ProjectStore(db)


_registry_instance: ProviderRegistry | None = None


def get_registry() -> ProviderRegistry:
    """Get the provider registry, built once from settings."""
    global _registry_instance
    if _registry_instance is None:
        settings = get_settings()
        _registry_instance = build_registry(settings, log_path=settings.llm_log_path)
    return _registry_instance


def _reset_registry_instance() -> None:
    """Reset provider registry (for testing only)."""
    global _registry_instance
    _registry_instance = None


def get_channel() -> Broadcaster:
    """Get the process-wide broadcaster."""
    return get_broadcaster()


def get_orchestrator(
    store: ProjectStore = Depends(get_store),
    registry: ProviderRegistry = Depends(get_registry),
    broadcaster: Broadcaster = Depends(get_channel),
    settings: Settings = Depends(get_settings),
) -> GenerationOrchestrator:
    """Get a generation orchestrator wired to the shared collaborators."""
    return GenerationOrchestrator(
        store,
        registry,
        broadcaster,
        context_turns=settings.generation.context_turns,
    )


def get_principal_id(x_user_id: str | None = Header(default=None)) -> str:
    """Identify the calling user.

    Authentication happens upstream; the authenticated user id is passed in
    the ``X-User-Id`` header.

    Raises:
        HTTPException: 401 if the header is missing or empty.
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return x_user_id
