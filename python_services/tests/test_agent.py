import json
from types import SimpleNamespace

import anthropic
import httpx
import pytest

from conftest import FakeMessages, anthropic_response, text_block, tool_use_block

from ai_tutor.agent import (
    TEST_PROMPT,
    OrchestratorError,
    QueryOptions,
    TutorOrchestrator,
    build_context_prompt,
    run_orchestrator_test,
)
from ai_tutor.models import (
    AssistantMessage,
    LearnRequest,
    ResultMessage,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    UserMessage,
)
from shared.config import get_settings


def make_orchestrator(responses):
    messages = FakeMessages(responses)
    return TutorOrchestrator(client=SimpleNamespace(messages=messages)), messages


async def collect(orchestrator, prompt="teach me", options=None):
    return [m async for m in orchestrator.query(prompt, options)]


def test_context_prompt_for_a_fresh_session():
    req = LearnRequest.model_validate(
        {
            "sessionId": "session_1",
            "chatHistory": [{"role": "user", "content": "I want to learn about rocks"}],
            "userInput": "I want to learn about rocks",
        }
    )

    prompt = build_context_prompt(req)

    assert "- Session ID: session_1" in prompt
    assert "- Current Lesson: None - ready to start new lesson" in prompt
    assert "- Interactive Environment: None - ready to create" in prompt
    assert "CURRENT ENVIRONMENT CODE" not in prompt
    assert "USER: I want to learn about rocks" in prompt
    assert "USER REQUEST: I want to learn about rocks" in prompt


def test_context_prompt_with_active_content():
    req = LearnRequest(
        session_id="s",
        chat_history=[],
        current_lesson_section="<h2>Igneous rocks</h2>",
        current_environment_code="function setup() {}",
        user_input="make it faster",
    )

    prompt = build_context_prompt(req)

    assert "- Current Lesson: <h2>Igneous rocks</h2>" in prompt
    assert "- Interactive Environment: Active visualization available" in prompt
    assert "CURRENT ENVIRONMENT CODE:\nfunction setup() {}" in prompt


def test_missing_api_key_is_reported(monkeypatch):
    monkeypatch.setattr(get_settings(), "anthropic_api_key", None)
    with pytest.raises(OrchestratorError):
        TutorOrchestrator()


@pytest.mark.asyncio
async def test_query_runs_tools_then_finishes(fake_llm):
    fake_llm.reply = "<h2>Rocks</h2>"
    orchestrator, fake_messages = make_orchestrator(
        [
            anthropic_response(
                text_block("Let me build a lesson."),
                tool_use_block(
                    "toolu_1",
                    "mcp__tutor-tools__generate_lesson_plan",
                    {"topic": "rocks", "section": "Introduction", "difficulty": "beginner"},
                ),
                stop_reason="tool_use",
                input_tokens=100,
                output_tokens=50,
            ),
            anthropic_response(text_block("Your lesson is ready!"), input_tokens=200, output_tokens=20),
        ]
    )

    messages = await collect(orchestrator)

    assert [m.type for m in messages] == ["assistant", "user", "assistant", "result"]
    first = messages[0]
    assert isinstance(first, AssistantMessage)
    assert isinstance(first.content[0], TextBlock)
    assert isinstance(first.content[1], ToolUseBlock)

    tool_results = messages[1]
    assert isinstance(tool_results, UserMessage)
    block = tool_results.content[0]
    assert isinstance(block, ToolResultBlock)
    assert block.tool_use_id == "toolu_1"
    assert not block.is_error
    assert json.loads(block.content[0]["text"])["content"] == "<h2>Rocks</h2>"

    result = messages[-1]
    assert isinstance(result, ResultMessage)
    assert result.subtype == "success"
    assert result.result == "Your lesson is ready!"
    assert result.usage == {"input_tokens": 300, "output_tokens": 70}
    assert result.num_turns == 2
    assert result.total_cost_usd == pytest.approx((300 * 3.0 + 70 * 15.0) / 1_000_000)

    # The second call carries the assistant turn and the tool result back to the model
    followup = fake_messages.requests[1]["messages"]
    assert followup[1]["role"] == "assistant"
    assert followup[2]["role"] == "user"
    assert followup[2]["content"][0]["type"] == "tool_result"
    assert followup[2]["content"][0]["tool_use_id"] == "toolu_1"


@pytest.mark.asyncio
async def test_tools_offered_to_model_follow_allowlist(fake_llm):
    orchestrator, fake_messages = make_orchestrator([anthropic_response(text_block("hi"))])

    await collect(orchestrator, options=QueryOptions(allowed_tools=["answer_question_directly"]))

    tools = fake_messages.requests[0]["tools"]
    assert [t["name"] for t in tools] == ["mcp__tutor-tools__answer_question_directly"]


@pytest.mark.asyncio
async def test_tool_outside_allowlist_is_refused(fake_llm):
    orchestrator, _ = make_orchestrator(
        [
            anthropic_response(
                tool_use_block("toolu_9", "Write", {"path": "/etc/passwd"}), stop_reason="tool_use"
            ),
            anthropic_response(text_block("Sorry about that.")),
        ]
    )

    messages = await collect(orchestrator)

    block = messages[1].content[0]
    assert block.is_error
    assert "not available" in block.content[0]["text"]
    assert fake_llm.calls == []
    assert messages[-1].subtype == "success"


@pytest.mark.asyncio
async def test_max_turns_ends_with_error_result(fake_llm):
    looping = [
        anthropic_response(
            tool_use_block(f"toolu_{i}", "answer_question_directly", {"question": "again?"}),
            stop_reason="tool_use",
        )
        for i in range(2)
    ]
    orchestrator, _ = make_orchestrator(looping)

    messages = await collect(orchestrator, options=QueryOptions(max_turns=2))

    result = messages[-1]
    assert result.subtype == "error_max_turns"
    assert result.is_error
    assert result.num_turns == 2
    assert len(fake_llm.calls) == 2


@pytest.mark.asyncio
async def test_api_error_ends_with_execution_error():
    failure = anthropic.APIConnectionError(request=httpx.Request("POST", "https://api.anthropic.com/v1/messages"))
    orchestrator, _ = make_orchestrator([failure])

    messages = await collect(orchestrator)

    assert len(messages) == 1
    assert messages[0].subtype == "error_during_execution"
    assert messages[0].is_error


@pytest.mark.asyncio
async def test_orchestrator_test_collects_assistant_and_result(fake_llm):
    orchestrator, fake_messages = make_orchestrator([anthropic_response(text_block("Bubble sort!"))])

    report = await run_orchestrator_test(orchestrator)

    assert report["success"] is True
    assert [m["type"] for m in report["messages"]] == ["assistant", "result"]
    assert report["messages"][0]["content"][0] == {"type": "text", "text": "Bubble sort!"}
    assert report["messages"][1]["result"] == "Bubble sort!"
    assert fake_messages.requests[0]["messages"][0]["content"] == TEST_PROMPT
    assert "bubble sort" in fake_messages.requests[0]["system"]
