"""Prompt template tests."""

import pytest

from vibe.generation.prompts import (
    EXPLAIN_TEMPLATE,
    SYSTEM_PROMPTS,
    PromptTemplate,
    get_system_prompt,
    render_app_prompt,
    render_fix_prompt,
)
from vibe.providers.models import (
    DesignTokens,
    ExistingFile,
    FrameworkKind,
    GenerationContext,
)


def make_context(**overrides) -> GenerationContext:
    values = dict(
        framework=FrameworkKind.REACT,
        project_name="Todo App",
        dependencies=("react", "react-dom"),
    )
    values.update(overrides)
    return GenerationContext(**values)


def test_prompt_template_renders_variables():
    """PromptTemplate substitutes variables correctly."""
    template = PromptTemplate("Hello {name}, welcome to {project}!")
    result = template.render(name="Alice", project="Vibe")

    assert result == "Hello Alice, welcome to Vibe!"


def test_prompt_template_handles_missing_variable():
    """PromptTemplate raises error for missing variables."""
    template = PromptTemplate("Hello {name}!")

    with pytest.raises(KeyError):
        template.render()


def test_every_framework_has_a_system_prompt():
    assert set(SYSTEM_PROMPTS) == set(FrameworkKind)
    assert "Vue" in get_system_prompt(FrameworkKind.VUE)


@pytest.mark.parametrize("framework", list(FrameworkKind))
def test_app_prompt_renders_for_every_framework(framework):
    prompt = render_app_prompt("A todo list with filters", make_context(framework=framework))

    assert "A todo list with filters" in prompt
    assert "Todo App" in prompt


def test_app_prompt_joins_dependencies_and_files():
    context = make_context(
        existing_files=(
            ExistingFile(path="src/App.tsx", content="", language="typescript"),
            ExistingFile(path="src/index.css", content="", language="css"),
        )
    )

    prompt = render_app_prompt("Add a footer", context)

    assert "Dependencies: react, react-dom" in prompt
    assert "Existing files: src/App.tsx, src/index.css" in prompt


def test_app_prompt_without_files_says_none():
    prompt = render_app_prompt("Build a counter", make_context())

    assert "Existing files: None" in prompt


def test_app_prompt_includes_design_tokens_when_present():
    tokens = DesignTokens(primary="#3b82f6", secondary="#10b981", font_family="Inter", spacing="8px")

    with_tokens = render_app_prompt("Build a counter", make_context(design_tokens=tokens))
    without_tokens = render_app_prompt("Build a counter", make_context())

    assert "#3b82f6" in with_tokens
    assert "Inter" in with_tokens
    assert "Design system" not in without_tokens


def test_explain_template_includes_language_and_code():
    prompt = EXPLAIN_TEMPLATE.render(language="typescript", code="const x: number = 1;")

    assert "typescript" in prompt
    assert "const x: number = 1;" in prompt


def test_fix_prompt_generic_by_default():
    prompt = render_fix_prompt("x is undefined", "console.log(x)")

    assert "Error: x is undefined" in prompt
    assert "console.log(x)" in prompt


@pytest.mark.parametrize(
    "kind,marker",
    [
        ("syntax", "syntax error"),
        ("type", "TypeScript error"),
        ("runtime", "runtime error"),
        ("build", "build failed"),
    ],
)
def test_fix_prompt_kind_specific(kind, marker):
    prompt = render_fix_prompt("boom", "let a = ;", kind)

    assert marker in prompt
    assert "let a = ;" in prompt


def test_fix_prompt_unknown_kind_falls_back():
    assert render_fix_prompt("boom", "code", "network") == render_fix_prompt("boom", "code")
