"""Tutor orchestrator: an Anthropic Messages tool-use loop over the tutor tools.

`TutorOrchestrator.query` runs up to `max_turns` model turns. Each turn yields
the assistant message, then the results of any tool calls it made, and the
run always ends with one `ResultMessage` carrying usage and cost. Tools
outside the allowlist are answered with an error result instead of running.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional

import anthropic

from shared.config import get_settings

from .models import (
    AgentMessage,
    AssistantMessage,
    LearnRequest,
    ResultMessage,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    UserMessage,
)
from .tools import EDUCATIONAL_TOOLS, ToolRegistry, tutor_tools

logger = logging.getLogger(__name__)


ORCHESTRATOR_SYSTEM_PROMPT = """You are an AI tutor orchestrator. You have access to specialized tools for education:

AVAILABLE TOOLS:
- generate_lesson_plan: Create educational content in HTML format
- generate_interactive_environment: Create p5.js visualizations and simulations
- update_interactive_environment: Modify existing p5.js code
- answer_question_directly: Provide direct explanations

INSTRUCTIONS:
- For new topics: Start with generate_lesson_plan to create educational content
- For visualizations: Use generate_interactive_environment to create p5.js code
- For code changes: Use update_interactive_environment with the current code
- For questions: Use answer_question_directly for explanations
- Always be educational, engaging, and encourage learning
- Make lessons interactive and visual when possible
- DO NOT use any other tools like TodoWrite, Read, Write, etc.
- ONLY use the educational tools provided above

Analyze the user's request and use the appropriate tool(s)."""


TEST_SYSTEM_PROMPT = """You are an AI tutor orchestrator. You have access to specialized tools for education:

AVAILABLE TOOLS:
- generate_lesson_plan: Create educational content in HTML format
- generate_interactive_environment: Create p5.js visualizations and simulations
- update_interactive_environment: Modify existing p5.js code
- answer_question_directly: Provide direct explanations

INSTRUCTIONS:
For this test, please:
1. Use generate_lesson_plan to create content about bubble sort
2. Use generate_interactive_environment to create a p5.js visualization

Do NOT use any other tools. Focus only on the educational tools provided."""


TEST_PROMPT = """Hello! I want to learn about bubble sort algorithms. Please help me by:
1. Creating a lesson plan about bubble sort
2. Then creating an interactive visualization to show how it works

This is just a test to see if the orchestrator and tools are working properly."""


class OrchestratorError(Exception):
    """Raised when the orchestrator cannot be started."""


def build_context_prompt(req: LearnRequest) -> str:
    """Render the session state and chat turn into the orchestrator prompt."""
    history = "\n".join(f"{msg.role.upper()}: {msg.content}" for msg in req.chat_history)
    lesson = req.current_lesson_section or "None - ready to start new lesson"
    environment = (
        "Active visualization available" if req.current_environment_code else "None - ready to create"
    )
    # update_interactive_environment needs the code itself as currentCode
    environment_code = (
        f"\n\nCURRENT ENVIRONMENT CODE:\n{req.current_environment_code}" if req.current_environment_code else ""
    )
    return f"""I am an AI tutor helping users learn interactively.

CURRENT SESSION STATE:
- Session ID: {req.session_id}
- Current Lesson: {lesson}
- Interactive Environment: {environment}{environment_code}

PREVIOUS CONVERSATION:
{history}

USER REQUEST: {req.user_input}

Please help the user learn by:
1. For new topics: Use generate_lesson_plan to create educational content
2. For visualizations: Use generate_interactive_environment to create p5.js code
3. For code modifications: Use update_interactive_environment with current code
4. For questions: Use answer_question_directly for explanations

Always be educational, engaging, and make learning interactive when possible."""


@dataclass
class QueryOptions:
    system_prompt: str = ORCHESTRATOR_SYSTEM_PROMPT
    allowed_tools: List[str] = field(default_factory=lambda: list(EDUCATIONAL_TOOLS))
    max_turns: int = 5
    model: Optional[str] = None
    max_tokens: Optional[int] = None
    # Tools run without confirmation; kept for parity with agent SDK options
    permission_mode: str = "bypassPermissions"


class TutorOrchestrator:
    """Agent loop over the Anthropic Messages API with the tutor tool registry.

    ``query`` yields an ``AssistantMessage`` per model turn, a ``UserMessage``
    holding the tool results of that turn, and always finishes with exactly
    one ``ResultMessage``.
    """

    def __init__(self, registry: ToolRegistry = tutor_tools, client: Optional[Any] = None) -> None:
        self.settings = get_settings()
        self.registry = registry
        if client is None:
            if not self.settings.anthropic_api_key:
                raise OrchestratorError("ANTHROPIC_API_KEY is not configured")
            client = anthropic.AsyncAnthropic(api_key=self.settings.anthropic_api_key)
        self.client = client

    def default_options(self) -> QueryOptions:
        return QueryOptions(
            max_turns=self.settings.orchestrator_max_turns,
            model=self.settings.orchestrator_model,
            max_tokens=self.settings.orchestrator_max_tokens,
        )

    async def query(self, prompt: str, options: Optional[QueryOptions] = None) -> AsyncIterator[AgentMessage]:
        options = options or self.default_options()
        model = options.model or self.settings.orchestrator_model
        max_tokens = options.max_tokens or self.settings.orchestrator_max_tokens
        tools = self.registry.schemas(options.allowed_tools)
        messages: List[Dict[str, Any]] = [{"role": "user", "content": prompt}]
        usage = {"input_tokens": 0, "output_tokens": 0}
        final_text = ""

        for turn in range(1, options.max_turns + 1):
            try:
                response = await self.client.messages.create(
                    model=model,
                    system=options.system_prompt,
                    max_tokens=max_tokens,
                    tools=tools,
                    messages=messages,
                )
            except anthropic.APIError as e:
                logger.error(f"❌ Orchestrator call failed on turn {turn}: {e}")
                yield self._result("error_during_execution", str(e), usage, turn)
                return

            self._accumulate_usage(usage, getattr(response, "usage", None))
            blocks = [b for b in (self._convert_block(raw) for raw in response.content) if b is not None]
            yield AssistantMessage(content=blocks, model=getattr(response, "model", model))

            texts = [b.text for b in blocks if isinstance(b, TextBlock)]
            if texts:
                final_text = "\n".join(texts)
            tool_uses = [b for b in blocks if isinstance(b, ToolUseBlock)]

            if getattr(response, "stop_reason", None) != "tool_use" or not tool_uses:
                yield self._result("success", final_text, usage, turn)
                return

            messages.append({"role": "assistant", "content": [b.model_dump() for b in blocks]})
            results = await self._run_tools(tool_uses, options.allowed_tools)
            yield UserMessage(content=results)
            messages.append({"role": "user", "content": [r.model_dump() for r in results]})

        logger.warning(f"⚠️ Orchestrator stopped after {options.max_turns} turns")
        yield self._result("error_max_turns", None, usage, options.max_turns)

    async def _run_tools(self, tool_uses: List[ToolUseBlock], allowed: Optional[List[str]]) -> List[ToolResultBlock]:
        async def run_one(block: ToolUseBlock) -> ToolResultBlock:
            if not self.registry.is_allowed(block.name, allowed):
                logger.warning(f"Blocked tool outside allowlist: {block.name}")
                return ToolResultBlock(
                    tool_use_id=block.id,
                    content=[{"type": "text", "text": f"Tool {block.name} is not available"}],
                    is_error=True,
                )
            logger.info(f"🔧 Running tool {block.name}")
            result = await self.registry.call(block.name, block.input)
            return ToolResultBlock(tool_use_id=block.id, content=result.content, is_error=result.is_error)

        return list(await asyncio.gather(*(run_one(b) for b in tool_uses)))

    @staticmethod
    def _convert_block(raw: Any):
        kind = getattr(raw, "type", None)
        if kind == "text":
            return TextBlock(text=raw.text)
        if kind == "tool_use":
            return ToolUseBlock(id=raw.id, name=raw.name, input=dict(raw.input or {}))
        return None

    @staticmethod
    def _accumulate_usage(usage: Dict[str, int], turn_usage: Any) -> None:
        if turn_usage is None:
            return
        usage["input_tokens"] += int(getattr(turn_usage, "input_tokens", 0) or 0)
        usage["output_tokens"] += int(getattr(turn_usage, "output_tokens", 0) or 0)

    def _result(self, subtype: str, text: Optional[str], usage: Dict[str, int], turns: int) -> ResultMessage:
        cost = (
            usage["input_tokens"] * self.settings.orchestrator_input_cost_per_mtok
            + usage["output_tokens"] * self.settings.orchestrator_output_cost_per_mtok
        ) / 1_000_000
        return ResultMessage(
            subtype=subtype,
            result=text,
            total_cost_usd=round(cost, 6),
            usage=dict(usage),
            num_turns=turns,
            is_error=subtype != "success",
        )


async def run_orchestrator_test(orchestrator: TutorOrchestrator) -> Dict[str, Any]:
    """Run the fixed bubble-sort prompt and collect the assistant/result messages."""
    logger.info("Starting orchestrator test...")
    options = orchestrator.default_options()
    options.system_prompt = TEST_SYSTEM_PROMPT

    messages: List[Dict[str, Any]] = []
    async for message in orchestrator.query(TEST_PROMPT, options):
        logger.info(f"Received message type: {message.type}")
        if isinstance(message, AssistantMessage):
            messages.append({"type": "assistant", "content": [b.model_dump() for b in message.content]})
        elif isinstance(message, ResultMessage):
            messages.append(
                {
                    "type": "result",
                    "result": message.result,
                    "cost": message.total_cost_usd,
                    "tokens": message.usage,
                }
            )
            break

    return {
        "success": True,
        "messages": messages,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
