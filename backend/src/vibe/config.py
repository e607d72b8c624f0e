"""Configuration system for the Vibe backend.

This module handles loading settings from environment variables and an INI
file, providing sensible defaults, and computing derived paths inside the
data directory.
"""

from configparser import ConfigParser
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional
import os


class ConfigError(Exception):
    """Raised when configuration validation fails."""

    pass


# Schema: section -> key -> (type, default, min, max, description)
CONFIG_SCHEMA: dict[str, dict[str, tuple[type, Any, Any, Any, str]]] = {
    "generation": {
        "max_tokens": (int, 4000, 256, 32768, "Max response tokens for code generation"),
        "temperature": (float, 0.7, 0.0, 2.0, "Sampling temperature for code generation"),
        "history_turns": (int, 5, 0, 50, "Prior turns sent to the model"),
        "context_turns": (int, 10, 0, 100, "Prior turns loaded from storage"),
        "min_prompt_chars": (int, 10, 1, 1000, "Shortest accepted prompt"),
        "max_prompt_chars": (int, 2000, 100, 100_000, "Longest accepted prompt"),
        "chars_per_token": (int, 4, 1, 10, "Characters per token for estimates"),
    },
    "llm": {
        "explain_temperature": (float, 0.5, 0.0, 2.0, "Temperature for code explanations"),
        "explain_max_tokens": (int, 500, 64, 8192, "Max tokens for code explanations"),
        "fix_temperature": (float, 0.3, 0.0, 2.0, "Temperature for fix suggestions"),
        "fix_max_tokens": (int, 1000, 64, 8192, "Max tokens for fix suggestions"),
        "probe_timeout_seconds": (float, 5.0, 0.1, 60.0, "Availability probe timeout"),
    },
    "paths": {
        "logs_dir": (str, "logs", None, None, "Logs directory name"),
        "db_file": (str, "vibe.db", None, None, "SQLite database file name"),
    },
}


@dataclass(frozen=True)
class GenerationConfig:
    """Code generation configuration."""

    max_tokens: int
    temperature: float
    history_turns: int
    context_turns: int
    min_prompt_chars: int
    max_prompt_chars: int
    chars_per_token: int


@dataclass(frozen=True)
class LLMConfig:
    """Auxiliary LLM call configuration."""

    explain_temperature: float
    explain_max_tokens: int
    fix_temperature: float
    fix_max_tokens: int
    probe_timeout_seconds: float


@dataclass(frozen=True)
class PathsConfig:
    """Path names configuration."""

    logs_dir: str
    db_file: str


def _load_section(
    parser: ConfigParser, section: str, schema: dict[str, tuple[type, Any, Any, Any, str]]
) -> dict[str, Any]:
    """Load and validate a configuration section.

    Args:
        parser: ConfigParser instance with loaded config
        section: Section name to load
        schema: Schema definition for the section

    Returns:
        Dictionary of validated configuration values

    Raises:
        ConfigError: If validation fails
    """
    result = {}

    for key, (typ, default, min_val, max_val, _) in schema.items():
        if parser.has_option(section, key):
            raw_value = parser.get(section, key)
            value: bool | int | float | str
            try:
                if typ is bool:
                    value = raw_value.lower() in ("true", "1", "yes", "on")
                elif typ is int:
                    value = int(raw_value)
                elif typ is float:
                    value = float(raw_value)
                else:
                    value = raw_value
            except ValueError as e:
                raise ConfigError(
                    f"Invalid value for [{section}].{key}: {raw_value!r} (expected {typ.__name__})"
                ) from e
        else:
            value = default

        if typ in (int, float) and value is not None:
            if min_val is not None and value < min_val:
                raise ConfigError(
                    f"Value for [{section}].{key} is {value}, but minimum is {min_val}"
                )
            if max_val is not None and value > max_val:
                raise ConfigError(
                    f"Value for [{section}].{key} is {value}, but maximum is {max_val}"
                )

        result[key] = value

    return result


def _section_defaults(section: str) -> dict[str, Any]:
    return {key: default for key, (_, default, _, _, _) in CONFIG_SCHEMA[section].items()}


def _load_config(config_path: Optional[Path] = None) -> "Config":
    """Load configuration from an INI file (internal use only).

    Args:
        config_path: Path to config file. If None, uses defaults from schema.

    Returns:
        Config object with all sections populated and a placeholder data_dir
        that load_settings() replaces.

    Raises:
        ConfigError: If validation fails
    """
    parser = ConfigParser()

    if config_path and config_path.exists():
        parser.read(config_path)

    generation = GenerationConfig(
        **_load_section(parser, "generation", CONFIG_SCHEMA["generation"])
    )
    llm = LLMConfig(**_load_section(parser, "llm", CONFIG_SCHEMA["llm"]))
    paths = PathsConfig(**_load_section(parser, "paths", CONFIG_SCHEMA["paths"]))

    return Config(
        data_dir=Path("."),
        generation=generation,
        llm=llm,
        paths=paths,
    )


@dataclass(frozen=True)
class Config:
    """Complete application configuration."""

    data_dir: Path
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    openai_model: str = "gpt-4-turbo-preview"
    anthropic_model: str = "claude-3-opus-20240229"
    ollama_model: str = "codellama"
    ollama_endpoint: str = "http://localhost:11434"
    frontend_url: str = "http://localhost:3000"

    # Section configs, defaults set in __post_init__
    generation: GenerationConfig = None  # type: ignore[assignment]
    llm: LLMConfig = None  # type: ignore[assignment]
    paths: PathsConfig = None  # type: ignore[assignment]

    def __post_init__(self):
        """Initialize section configs with defaults if not provided."""
        # frozen=True, so object.__setattr__ is required
        if self.generation is None:
            object.__setattr__(
                self, "generation", GenerationConfig(**_section_defaults("generation"))
            )
        if self.llm is None:
            object.__setattr__(self, "llm", LLMConfig(**_section_defaults("llm")))
        if self.paths is None:
            object.__setattr__(self, "paths", PathsConfig(**_section_defaults("paths")))

    @property
    def db_path(self) -> Path:
        """Path to the SQLite database holding projects, files and turns."""
        return self.data_dir / self.paths.db_file

    @property
    def llm_log_path(self) -> Path:
        """Path to the JSONL log of every model call."""
        return self.data_dir / self.paths.logs_dir / "llm-queries.jsonl"

    @property
    def config_path(self) -> Path:
        return self.data_dir / "config.ini"


@lru_cache(maxsize=1)
def load_settings() -> Config:
    """Load settings from environment variables and config file.

    Settings are cached for the lifetime of the application.
    Use load_settings.cache_clear() to reload settings.

    Returns:
        Config object populated from environment variables and config file.
    """
    data_dir_str = os.getenv("VIBE_DATA_DIR")
    data_dir = Path(data_dir_str) if data_dir_str else Path.home() / ".vibe"

    config_file = data_dir / "config.ini"
    try:
        config_exists = config_file.exists()
    except PermissionError:
        config_exists = False
    base_config = _load_config(config_file if config_exists else None)

    return Config(
        data_dir=data_dir,
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4-turbo-preview"),
        anthropic_model=os.getenv("ANTHROPIC_MODEL", "claude-3-opus-20240229"),
        ollama_model=os.getenv("OLLAMA_MODEL", "codellama"),
        ollama_endpoint=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434"),
        frontend_url=os.getenv("FRONTEND_URL", "http://localhost:3000"),
        generation=base_config.generation,
        llm=base_config.llm,
        paths=base_config.paths,
    )


# Alias for code that imports Settings instead of Config
Settings = Config
