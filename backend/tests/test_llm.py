"""LLM client tests."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from litellm.exceptions import APIConnectionError, AuthenticationError, RateLimitError

from vibe.llm import (
    LLMClient,
    ProviderAuthenticationError,
    ProviderConnectionError,
    ProviderError,
    ProviderRateLimitError,
)


def completion_response(content: str):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def stream_response(*texts: str, error: Exception | None = None):
    async def gen():
        for text in texts:
            yield SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])
        if error is not None:
            raise error

    return gen()


@pytest.fixture
def mock_completion():
    """Mock litellm completion response."""
    with patch("vibe.llm.client.acompletion", new_callable=AsyncMock) as mock:
        mock.return_value = completion_response("Test response")
        yield mock


async def test_llm_client_generates_response(mock_completion):
    """LLM client generates response from prompt."""
    client = LLMClient(provider="openai", model="gpt-4-turbo-preview")

    response = await client.generate("Test prompt")

    assert response == "Test response"
    mock_completion.assert_called_once()


async def test_llm_client_uses_bare_model_for_openai(mock_completion):
    client = LLMClient(provider="openai", model="gpt-4-turbo-preview")

    await client.generate("Test")

    assert mock_completion.call_args.kwargs["model"] == "gpt-4-turbo-preview"


async def test_llm_client_prefixes_other_providers(mock_completion):
    """LLM client uses provider/model for non-default providers."""
    client = LLMClient(provider="anthropic", model="claude-3-opus-20240229")

    await client.generate("Test")

    assert mock_completion.call_args.kwargs["model"] == "anthropic/claude-3-opus-20240229"


async def test_llm_client_ollama_passes_api_base(mock_completion):
    client = LLMClient(provider="ollama", model="codellama", endpoint="http://localhost:11434")

    await client.generate("Test")

    kwargs = mock_completion.call_args.kwargs
    assert kwargs["model"] == "ollama/codellama"
    assert kwargs["api_base"] == "http://localhost:11434"


async def test_llm_client_orders_system_history_user(mock_completion):
    """System prompt first, then prior turns, then the prompt."""
    client = LLMClient(provider="openai", model="gpt-4o")

    await client.generate(
        "Add a footer",
        system_prompt="You are an expert React developer.",
        history=[
            {"role": "user", "content": "Build a todo app"},
            {"role": "assistant", "content": "Generated 3 files"},
        ],
    )

    messages = mock_completion.call_args.kwargs["messages"]
    assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
    assert messages[-1]["content"] == "Add a footer"


async def test_llm_client_uses_configured_sampling_defaults(mock_completion):
    client = LLMClient(provider="openai", model="gpt-4o")

    await client.generate("Test")

    kwargs = mock_completion.call_args.kwargs
    assert kwargs["temperature"] == 0.7
    assert kwargs["max_tokens"] == 4000


async def test_llm_client_explicit_sampling_wins(mock_completion):
    client = LLMClient(provider="openai", model="gpt-4o")

    await client.generate("Test", temperature=0.3, max_tokens=1000)

    kwargs = mock_completion.call_args.kwargs
    assert kwargs["temperature"] == 0.3
    assert kwargs["max_tokens"] == 1000


async def test_llm_client_raises_authentication_error():
    """LLM client raises ProviderAuthenticationError on auth failure."""
    with patch("vibe.llm.client.acompletion", new_callable=AsyncMock) as mock:
        mock.side_effect = AuthenticationError(
            message="Invalid API key",
            llm_provider="openai",
            model="gpt-4o",
        )
        client = LLMClient(provider="openai", model="gpt-4o")

        with pytest.raises(ProviderAuthenticationError) as exc_info:
            await client.generate("Test")

        assert "Authentication failed" in str(exc_info.value)
        assert exc_info.value.code == "provider_error"


async def test_llm_client_raises_rate_limit_error():
    """LLM client raises ProviderRateLimitError on rate limit."""
    with patch("vibe.llm.client.acompletion", new_callable=AsyncMock) as mock:
        mock.side_effect = RateLimitError(
            message="Rate limit exceeded",
            llm_provider="openai",
            model="gpt-4o",
        )
        client = LLMClient(provider="openai", model="gpt-4o")

        with pytest.raises(ProviderRateLimitError) as exc_info:
            await client.generate("Test")

        assert "Rate limit exceeded" in str(exc_info.value)


# =============================================================================
# Streaming
# =============================================================================


async def test_generate_stream_yields_increments():
    with patch("vibe.llm.client.acompletion", new_callable=AsyncMock) as mock:
        mock.return_value = stream_response("// File: a.ts\n", "", "x = 1")
        client = LLMClient(provider="openai", model="gpt-4o")

        increments = [text async for text in client.generate_stream("Test")]

    assert increments == ["// File: a.ts\n", "x = 1"]
    assert mock.call_args.kwargs["stream"] is True


async def test_generate_stream_translates_mid_stream_errors():
    with patch("vibe.llm.client.acompletion", new_callable=AsyncMock) as mock:
        mock.return_value = stream_response(
            "partial",
            error=APIConnectionError(message="reset", llm_provider="openai", model="gpt-4o"),
        )
        client = LLMClient(provider="openai", model="gpt-4o")

        received = []
        with pytest.raises(ProviderConnectionError):
            async for text in client.generate_stream("Test"):
                received.append(text)

    assert received == ["partial"]
    assert issubclass(ProviderConnectionError, ProviderError)


# =============================================================================
# Query log
# =============================================================================


async def test_query_log_records_request_and_response(tmp_path, mock_completion):
    log_path = tmp_path / "logs" / "llm-queries.jsonl"
    client = LLMClient(provider="openai", model="gpt-4o", log_path=log_path)

    await client.generate("Test prompt", system_prompt="System")

    entries = [json.loads(line) for line in log_path.read_text().splitlines()]
    assert len(entries) == 1
    assert entries[0]["response"] == "Test response"
    assert entries[0]["error"] is None
    assert entries[0]["request"]["messages"][0]["role"] == "system"


async def test_query_log_records_streamed_response(tmp_path):
    log_path = tmp_path / "llm.jsonl"
    with patch("vibe.llm.client.acompletion", new_callable=AsyncMock) as mock:
        mock.return_value = stream_response("a", "b")
        client = LLMClient(provider="openai", model="gpt-4o", log_path=log_path)

        async for _ in client.generate_stream("Test"):
            pass

    entry = json.loads(log_path.read_text().splitlines()[-1])
    assert entry["response"] == "ab"


async def test_query_log_records_errors(tmp_path):
    log_path = tmp_path / "llm.jsonl"
    with patch("vibe.llm.client.acompletion", new_callable=AsyncMock) as mock:
        mock.side_effect = AuthenticationError(
            message="Invalid API key", llm_provider="openai", model="gpt-4o"
        )
        client = LLMClient(provider="openai", model="gpt-4o", log_path=log_path)

        with pytest.raises(ProviderAuthenticationError):
            await client.generate("Test")

    entry = json.loads(log_path.read_text())
    assert entry["response"] is None
    assert "Invalid API key" in entry["error"]
