"""Configuration tests.

Tests verify behavior (types, ranges, loading) not specific values.
"""

from pathlib import Path

import pytest

from vibe.config import (
    CONFIG_SCHEMA,
    Config,
    ConfigError,
    _load_config,
    load_settings,
)


def write_config(directory: Path, content: str) -> Path:
    """Write a config.ini file to the directory and return the path."""
    directory.mkdir(parents=True, exist_ok=True)
    config_path = directory / "config.ini"
    config_path.write_text(content)
    return config_path


# =============================================================================
# Type Validation Tests
# =============================================================================


def test_all_settings_have_correct_types():
    """Every setting matches its declared type from schema."""
    config = _load_config(None)

    for section_name, keys in CONFIG_SCHEMA.items():
        section = getattr(config, section_name)
        for key, (expected_type, *_) in keys.items():
            value = getattr(section, key)
            assert isinstance(value, expected_type), (
                f"{section_name}.{key}: expected {expected_type.__name__}, "
                f"got {type(value).__name__}"
            )


def test_defaults_are_within_bounds():
    """Every numeric default lies inside its own declared range."""
    for section_name, keys in CONFIG_SCHEMA.items():
        for key, (typ, default, min_val, max_val, _) in keys.items():
            if typ not in (int, float):
                continue
            assert min_val <= default <= max_val, f"{section_name}.{key}"


def test_invalid_type_raises_clear_error(tmp_path: Path):
    """Non-numeric value for int setting gives helpful message."""
    config_path = write_config(tmp_path, "[generation]\nmax_tokens = lots")

    with pytest.raises(ConfigError) as exc_info:
        _load_config(config_path)

    assert "generation" in str(exc_info.value)
    assert "max_tokens" in str(exc_info.value)
    assert "int" in str(exc_info.value)


def test_invalid_float_raises_clear_error(tmp_path: Path):
    """Non-numeric value for float setting gives helpful message."""
    config_path = write_config(tmp_path, "[llm]\nfix_temperature = cold")

    with pytest.raises(ConfigError) as exc_info:
        _load_config(config_path)

    assert "fix_temperature" in str(exc_info.value)
    assert "float" in str(exc_info.value)


def test_value_below_minimum_rejected(tmp_path: Path):
    config_path = write_config(tmp_path, "[generation]\nchars_per_token = 0")

    with pytest.raises(ConfigError) as exc_info:
        _load_config(config_path)

    assert "minimum" in str(exc_info.value)


def test_value_above_maximum_rejected(tmp_path: Path):
    config_path = write_config(tmp_path, "[llm]\nprobe_timeout_seconds = 600")

    with pytest.raises(ConfigError) as exc_info:
        _load_config(config_path)

    assert "maximum" in str(exc_info.value)


def test_ini_values_override_defaults(tmp_path: Path):
    config_path = write_config(
        tmp_path, "[generation]\nhistory_turns = 3\n\n[paths]\ndb_file = other.db"
    )

    config = _load_config(config_path)

    assert config.generation.history_turns == 3
    assert config.paths.db_file == "other.db"
    assert config.generation.context_turns == CONFIG_SCHEMA["generation"]["context_turns"][1]


def test_config_without_sections_gets_defaults(tmp_path: Path):
    config = Config(data_dir=tmp_path)

    assert config.generation.max_prompt_chars == 2000
    assert config.llm.explain_max_tokens == 500
    assert config.db_path == tmp_path / "vibe.db"
    assert config.llm_log_path == tmp_path / "logs" / "llm-queries.jsonl"


# =============================================================================
# load_settings
# =============================================================================


def test_load_settings_reads_environment(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("VIBE_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("OLLAMA_MODEL", "llama3")
    monkeypatch.setenv("OLLAMA_BASE_URL", "http://ollama:11434")
    load_settings.cache_clear()

    settings = load_settings()

    assert settings.data_dir == tmp_path
    assert settings.openai_api_key == "sk-test"
    assert settings.anthropic_api_key is None
    assert settings.ollama_model == "llama3"
    assert settings.ollama_endpoint == "http://ollama:11434"


def test_empty_api_key_treated_as_missing(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("VIBE_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("ANTHROPIC_API_KEY", "")
    load_settings.cache_clear()

    assert load_settings().anthropic_api_key is None


def test_load_settings_reads_config_file_in_data_dir(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("VIBE_DATA_DIR", str(tmp_path))
    write_config(tmp_path, "[generation]\nmin_prompt_chars = 20")
    load_settings.cache_clear()

    assert load_settings().generation.min_prompt_chars == 20


def test_load_settings_is_cached(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("VIBE_DATA_DIR", str(tmp_path))
    load_settings.cache_clear()

    assert load_settings() is load_settings()
