"""Prompt validation tests."""

from hypothesis import given
from hypothesis import strategies as st

from vibe.config import load_settings
from vibe.providers.base import suggest_prompt_improvements, validate_prompt


def test_short_prompt_is_invalid():
    result = validate_prompt("hello")

    assert result.is_valid is False
    assert result.issues == ["Prompt is too short. Please provide more details."]
    assert result.estimated_tokens == 2


def test_long_prompt_is_invalid():
    result = validate_prompt("x" * 2001)

    assert result.is_valid is False
    assert result.issues == ["Prompt is too long. Please be more concise."]
    assert result.estimated_tokens == 501


def test_boundary_lengths_are_valid():
    assert validate_prompt("x" * 10).is_valid
    assert validate_prompt("x" * 2000).is_valid


def test_suggestions_do_not_affect_validity():
    result = validate_prompt("Build me a todo list app with filters")

    assert result.is_valid is True
    assert result.issues == []
    assert "Consider specifying the framework (React, Vue, or Vanilla JS)" in result.suggestions
    assert "You might want to specify styling preferences" in result.suggestions


def test_no_suggestions_when_framework_and_styling_given():
    assert suggest_prompt_improvements("A React dashboard with a dark design") == []


def test_limits_come_from_config(tmp_path, monkeypatch):
    data_dir = tmp_path / "custom"
    data_dir.mkdir()
    (data_dir / "config.ini").write_text("[generation]\nmin_prompt_chars = 20")
    monkeypatch.setenv("VIBE_DATA_DIR", str(data_dir))
    load_settings.cache_clear()

    assert validate_prompt("fifteen chars!!").is_valid is False


@given(st.text(max_size=3000))
def test_validation_depends_only_on_text(prompt):
    first = validate_prompt(prompt)
    second = validate_prompt(prompt)

    assert first == second
    assert first.estimated_tokens == -(-len(prompt) // 4)
    assert first.is_valid == (10 <= len(prompt) <= 2000)
