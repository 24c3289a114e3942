import pytest

from shared.llm_client import LLMClientError, UnifiedLLMClient
from shared.models import ConversationMessage, LLMProvider, MessageRole


class FakeProvider:
    def __init__(self, name, error=None):
        self.name = name
        self.error = error
        self.models = []

    async def generate_response(self, messages, max_tokens=1000, temperature=0.7, model=None):
        self.models.append(model)
        if self.error is not None:
            raise self.error
        return f"reply from {self.name}"


@pytest.fixture()
def unified(monkeypatch):
    monkeypatch.setattr(UnifiedLLMClient, "_initialize_clients", lambda self: None)
    client = UnifiedLLMClient()
    monkeypatch.setattr(client.settings, "allow_provider_fallback", False)
    return client


MESSAGES = [ConversationMessage(role=MessageRole.USER, content="hello")]


@pytest.mark.asyncio
async def test_generate_text_prefers_cerebras(unified):
    cerebras = FakeProvider("cerebras")
    unified.clients = {LLMProvider.CEREBRAS: cerebras, LLMProvider.OPENAI: FakeProvider("openai")}

    text = await unified.generate_text("hello", model="qwen-3-coder-480b", temperature=0.3, max_tokens=10)

    assert text == "reply from cerebras"
    assert cerebras.models == ["qwen-3-coder-480b"]


@pytest.mark.asyncio
async def test_missing_provider_without_fallback_raises(unified):
    unified.clients = {LLMProvider.OPENAI: FakeProvider("openai")}

    with pytest.raises(LLMClientError):
        await unified.generate_response(MESSAGES)


@pytest.mark.asyncio
async def test_provider_error_without_fallback_propagates(unified):
    unified.clients = {
        LLMProvider.CEREBRAS: FakeProvider("cerebras", error=RuntimeError("rate limited")),
        LLMProvider.OPENAI: FakeProvider("openai"),
    }

    with pytest.raises(RuntimeError):
        await unified.generate_response(MESSAGES)


@pytest.mark.asyncio
async def test_fallback_uses_next_provider_with_its_default_model(unified):
    openai_provider = FakeProvider("openai")
    unified.clients = {
        LLMProvider.CEREBRAS: FakeProvider("cerebras", error=RuntimeError("rate limited")),
        LLMProvider.OPENAI: openai_provider,
    }

    text, provider = await unified.generate_response(MESSAGES, model="gpt-oss-120b", allow_fallback=True)

    assert (text, provider) == ("reply from openai", LLMProvider.OPENAI)
    assert openai_provider.models == [None]


@pytest.mark.asyncio
async def test_fallback_reports_when_everything_fails(unified):
    unified.clients = {LLMProvider.ANTHROPIC: FakeProvider("anthropic", error=RuntimeError("overloaded"))}

    with pytest.raises(LLMClientError, match="overloaded"):
        await unified.generate_response(MESSAGES, allow_fallback=True)


@pytest.mark.asyncio
async def test_fallback_with_no_providers(unified):
    with pytest.raises(LLMClientError):
        await unified.generate_response(MESSAGES, allow_fallback=True)

    assert unified.get_available_providers() == []
