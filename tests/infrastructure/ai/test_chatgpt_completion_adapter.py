"""Tests for the ChatGPT completion adapter."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest
import pytest_asyncio

from claim_checker.domain.ports.completion_provider import CompletionError
from claim_checker.infrastructure.ai.chatgpt_adapter import ChatGPTCompletionAdapter, ChatGPTConfig


def _response(content):
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


@pytest_asyncio.fixture
async def adapter():
    """Initialized adapter with a fake key."""
    provider = ChatGPTCompletionAdapter(ChatGPTConfig(api_key="sk-test", model="gpt-4o-mini"))
    await provider.initialize()
    yield provider
    await provider.shutdown()


@pytest.mark.asyncio
async def test_initialize_requires_api_key():
    """Test that a missing key fails initialization."""
    provider = ChatGPTCompletionAdapter()

    with pytest.raises(ConnectionError, match="OPENAI_API_KEY"):
        await provider.initialize()
    assert not provider.is_available


@pytest.mark.asyncio
async def test_complete_returns_message_text(adapter):
    """Test a successful completion request."""
    create = AsyncMock(return_value=_response('{"claims": []}'))
    adapter._client.chat.completions.create = create

    text = await adapter.complete("system", "user")

    assert text == '{"claims": []}'
    kwargs = create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["messages"][0] == {"role": "system", "content": "system"}
    assert kwargs["response_format"] == {"type": "json_object"}
    assert adapter.model_name == "gpt-4o-mini"
    assert adapter.provider_name == "ChatGPT"


@pytest.mark.asyncio
async def test_empty_content_is_an_error(adapter):
    """Test that an empty message is reported as a failure."""
    adapter._client.chat.completions.create = AsyncMock(return_value=_response(""))

    with pytest.raises(CompletionError, match="empty"):
        await adapter.complete("system", "user")


@pytest.mark.asyncio
async def test_api_errors_become_completion_errors(adapter):
    """Test that client errors are converted to the port's error."""
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    adapter._client.chat.completions.create = AsyncMock(side_effect=openai.APIConnectionError(request=request))

    with pytest.raises(CompletionError, match="ChatGPT request failed"):
        await adapter.complete("system", "user")


@pytest.mark.asyncio
async def test_complete_before_initialize():
    """Test that an uninitialized adapter refuses requests."""
    provider = ChatGPTCompletionAdapter(ChatGPTConfig(api_key="sk-test"))

    with pytest.raises(RuntimeError, match="not initialized"):
        await provider.complete("system", "user")
