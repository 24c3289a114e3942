import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


class FakeLLM:
    """Stands in for the unified text-generation client."""

    def __init__(self, reply: str = "generated text", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def generate_text(self, prompt, model=None, temperature=0.7, max_tokens=1000):
        self.calls.append(
            {"prompt": prompt, "model": model, "temperature": temperature, "max_tokens": max_tokens}
        )
        if self.error is not None:
            raise self.error
        return self.reply


class FakeMessages:
    """Replays canned Anthropic responses and records each request."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.requests: List[Dict[str, Any]] = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def text_block(text):
    return SimpleNamespace(type="text", text=text)


def tool_use_block(block_id, name, tool_input):
    return SimpleNamespace(type="tool_use", id=block_id, name=name, input=tool_input)


def anthropic_response(*blocks, stop_reason="end_turn", input_tokens=10, output_tokens=5):
    return SimpleNamespace(
        content=list(blocks),
        stop_reason=stop_reason,
        model="claude-test",
        usage=SimpleNamespace(input_tokens=input_tokens, output_tokens=output_tokens),
    )


@pytest.fixture()
def fake_llm(monkeypatch):
    fake = FakeLLM()
    monkeypatch.setattr("ai_tutor.tools.get_llm_client", lambda: fake)
    return fake


@pytest.fixture()
def store(tmp_path):
    from ai_tutor.content_store import ContentStore

    return ContentStore(str(tmp_path / "generated"))


@pytest.fixture(autouse=True)
def clear_sessions():
    from ai_tutor.state import session_state

    session_state.clear()
    yield
    session_state.clear()
