"""Translate the orchestrator's message stream into server-sent events.

Each frame is ``data: <json>\\n\\n``. Frame types:

- ``text``: assistant prose (``content``)
- ``tool_use``: a tool call the agent made (``tool_name``, ``input``)
- ``tool_result``: output of one of the educational tools (``tool_name``, ``result``)
- ``done``: final frame (``success``, ``result`` or ``error``, ``cost``, ``usage``)
- ``error``: the stream broke after headers were sent (``message``)
"""

from __future__ import annotations

import inspect
import json
import logging
from contextlib import aclosing
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Iterator, Optional, Union

from .models import (
    AgentMessage,
    AssistantMessage,
    ResultMessage,
    StreamEvent,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    UserMessage,
)
from .tools import EDUCATIONAL_TOOLS, QUALIFIED_NAME_RE, bare_tool_name

logger = logging.getLogger(__name__)

ToolResultCallback = Callable[[str, Any], Union[Awaitable[None], None]]


def sse_frame(payload: Union[StreamEvent, Dict[str, Any]]) -> str:
    if isinstance(payload, StreamEvent):
        payload = payload.model_dump(exclude_none=True)
    return f"data: {json.dumps(payload)}\n\n"


def flatten_tool_content(content: Any) -> Any:
    """Return the text of the first content part, or the content unchanged."""
    if isinstance(content, list) and content:
        first = content[0]
        if isinstance(first, dict):
            return first.get("text") or first
        return getattr(first, "text", None) or first
    return content


def is_educational_tool(tool_name: str) -> bool:
    return any(name in tool_name for name in EDUCATIONAL_TOOLS)


class StreamTranslator:
    """Stateful translator for one orchestrator run.

    Tool names are not carried on tool results, so the translator remembers
    the id of every ``tool_use`` block it forwards and resolves results
    against that map, falling back to sniffing a qualified name out of the id.
    """

    def __init__(self, on_tool_result: Optional[ToolResultCallback] = None) -> None:
        self.on_tool_result = on_tool_result
        self._tool_names: Dict[str, str] = {}

    def resolve_tool_name(self, tool_use_id: Optional[str]) -> str:
        if not tool_use_id:
            return "unknown"
        name = self._tool_names.get(tool_use_id)
        if name is None:
            m = QUALIFIED_NAME_RE.search(tool_use_id)
            name = m.group(1) if m else "unknown"
        return bare_tool_name(name)

    async def translate(self, messages: AsyncIterator[AgentMessage]) -> AsyncIterator[str]:
        try:
            async with aclosing(messages) as stream:
                async for message in stream:
                    logger.debug(f"Processing message: {message.type}")
                    if isinstance(message, AssistantMessage):
                        for event in self._assistant_events(message):
                            yield sse_frame(event)
                    elif isinstance(message, UserMessage):
                        for event in self._tool_result_events(message):
                            await self._notify(event)
                            yield sse_frame(event)
                    elif isinstance(message, ResultMessage):
                        yield sse_frame(self._done_event(message))
                        break
        except Exception as e:  # noqa: BLE001
            logger.error(f"Streaming error: {e}")
            yield sse_frame(StreamEvent(type="error", message=str(e)))

    def _assistant_events(self, message: AssistantMessage) -> Iterator[StreamEvent]:
        for block in message.content:
            if isinstance(block, TextBlock):
                yield StreamEvent(type="text", content=block.text)
            elif isinstance(block, ToolUseBlock):
                name = bare_tool_name(block.name)
                self._tool_names[block.id] = name
                yield StreamEvent(type="tool_use", tool_name=name, input=block.input)

    def _tool_result_events(self, message: UserMessage) -> Iterator[StreamEvent]:
        for block in message.content:
            if not isinstance(block, ToolResultBlock):
                continue
            tool_name = self.resolve_tool_name(block.tool_use_id)
            if not is_educational_tool(tool_name):
                logger.debug(f"Dropping result of non-educational tool {tool_name}")
                continue
            yield StreamEvent(
                type="tool_result",
                tool_name=tool_name,
                result=flatten_tool_content(block.content),
            )

    @staticmethod
    def _done_event(message: ResultMessage) -> StreamEvent:
        if message.subtype == "success":
            return StreamEvent(
                type="done",
                success=True,
                result=message.result,
                cost=message.total_cost_usd,
                usage=message.usage,
            )
        return StreamEvent(
            type="done",
            success=False,
            error=message.subtype,
            cost=message.total_cost_usd,
            usage=message.usage,
        )

    async def _notify(self, event: StreamEvent) -> None:
        if self.on_tool_result is None:
            return
        try:
            outcome = self.on_tool_result(event.tool_name, event.result)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:  # noqa: BLE001
            logger.error(f"❌ Tool result handler failed for {event.tool_name}: {e}")
