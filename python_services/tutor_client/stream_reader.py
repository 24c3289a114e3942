from __future__ import annotations

import json
import logging
import time
from contextlib import aclosing
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Literal, Optional

import httpx
from pydantic import ValidationError

from ai_tutor.models import ChatMessage, LearnRequest, StreamEvent

from .content_parser import classify_tool_result
from .watcher import ContentWatcher

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8006"
ERROR_REPLY = "Sorry, I encountered an error. Please try again."


class TutorClientError(Exception):
    """Raised when the tutor service rejects a request or the stream reports an error."""


def parse_sse_line(line: str) -> Optional[StreamEvent]:
    if not line.startswith("data: "):
        return None
    try:
        data = json.loads(line[6:])
        return StreamEvent.model_validate(data)
    except (ValueError, ValidationError):
        # Skip invalid JSON
        logger.debug(f"Skipping malformed event line: {line[:80]}")
        return None


async def iter_sse_events(lines: AsyncIterator[str]) -> AsyncIterator[StreamEvent]:
    async for line in lines:
        event = parse_sse_line(line)
        if event is not None:
            yield event


class TutorClient:
    """HTTP client for the tutor service endpoints."""

    def __init__(self, base_url: str = DEFAULT_BASE_URL, http: Optional[httpx.AsyncClient] = None) -> None:
        self._owns_http = http is None
        # No read timeout: a learn turn can stay silent while tools run
        self.http = http or httpx.AsyncClient(base_url=base_url, timeout=httpx.Timeout(30.0, read=None))

    async def learn(self, request: LearnRequest) -> AsyncIterator[StreamEvent]:
        payload = request.model_dump(by_alias=True)
        async with self.http.stream("POST", "/api/learn", json=payload) as response:
            if response.status_code != 200:
                await response.aread()
                raise TutorClientError(f"Failed to fetch response: {response.status_code}")
            async for event in iter_sse_events(response.aiter_lines()):
                yield event

    async def write_content(self, content_type: str, content: str) -> Dict[str, Any]:
        response = await self.http.post("/api/write-content", json={"type": content_type, "content": content})
        return response.json()

    async def reset_content(self) -> Dict[str, Any]:
        response = await self.http.post("/api/reset-content")
        return response.json()

    async def generate_environment(
        self, env_type: str, prompt: str, description: Optional[str] = None
    ) -> Dict[str, Any]:
        response = await self.http.post(
            "/api/generate-environment",
            json={"type": env_type, "prompt": prompt, "description": description},
        )
        if response.status_code != 200:
            raise TutorClientError("Failed to generate environment")
        return response.json()

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()


@dataclass
class TutorMessage:
    id: str
    role: Literal["user", "assistant"]
    content: str


def _now_ms() -> int:
    return int(time.time() * 1000)


class LearningSession:
    """One learner's chat with the tutor.

    Mirrors what the learn page does: every turn sends the full history plus
    the current lesson and environment, assistant text is accumulated as it
    streams, and lesson/environment tool results replace the current copies.
    """

    def __init__(self, client: TutorClient, watcher: Optional[ContentWatcher] = None) -> None:
        self.client = client
        self.watcher = watcher
        self.session_id = f"session_{_now_ms()}"
        self.messages: List[TutorMessage] = []
        self.current_lesson_section = ""
        self.current_environment_code = ""
        self.last_answer: Optional[str] = None
        self.last_result: Optional[StreamEvent] = None
        self.is_loading = False

    async def start(self, topic: str) -> Optional[TutorMessage]:
        return await self.send(f"I want to learn about {topic}")

    def build_request(self, user_input: str) -> LearnRequest:
        return LearnRequest(
            session_id=self.session_id,
            chat_history=[ChatMessage(role=m.role, content=m.content) for m in self.messages],
            current_lesson_section=self.current_lesson_section,
            current_environment_code=self.current_environment_code,
            user_input=user_input,
        )

    async def send(self, user_input: str) -> Optional[TutorMessage]:
        """Send one turn; returns the assistant message, or None if nothing was sent."""
        if not user_input.strip() or self.is_loading:
            return None

        self.messages.append(TutorMessage(id=f"user_{_now_ms()}", role="user", content=user_input))
        request = self.build_request(user_input)
        self.is_loading = True
        if self.watcher is not None:
            self.watcher.set_generating(True)

        assistant: Optional[TutorMessage] = None
        try:
            async with aclosing(self.client.learn(request)) as events:
                async for event in events:
                    if assistant is None:
                        assistant = TutorMessage(id=f"assistant_{_now_ms()}", role="assistant", content="")
                        self.messages.append(assistant)
                    self._apply(event, assistant)
        except (httpx.HTTPError, TutorClientError) as e:
            logger.error(f"Error: {e}")
            assistant = TutorMessage(id=f"error_{_now_ms()}", role="assistant", content=ERROR_REPLY)
            self.messages.append(assistant)
        finally:
            self.is_loading = False
            if self.watcher is not None:
                self.watcher.set_generating(False)
                await self.watcher.force_refresh()

        return assistant

    def _apply(self, event: StreamEvent, assistant: TutorMessage) -> None:
        if event.type == "text" and event.content:
            assistant.content += event.content
        elif event.type == "tool_use":
            logger.info(f"Tool used: {event.tool_name}")
        elif event.type == "tool_result":
            update = classify_tool_result(event.tool_name, event.result)
            if not update.content:
                return
            if update.kind == "lesson":
                logger.info(f"Setting lesson content ({len(update.content)} chars)")
                self.current_lesson_section = update.content
            elif update.kind == "environment":
                logger.info(f"Setting environment code ({len(update.content)} chars)")
                self.current_environment_code = update.content
            elif update.kind == "answer":
                self.last_answer = update.content
        elif event.type == "done":
            logger.info(f"Conversation complete: {'success' if event.success else 'failed'}")
            self.last_result = event
        elif event.type == "error":
            raise TutorClientError(event.message or "stream error")
