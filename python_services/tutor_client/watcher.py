from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

import httpx

from .content_parser import ContentPart, parse_environment_buttons

logger = logging.getLogger(__name__)

LESSON_URL = "/generated/lesson-content.html"
ENVIRONMENT_URL = "/generated/interactive-environment.html"

ChangeCallback = Callable[..., Any]


@dataclass
class ContentChanges:
    lesson: bool = False
    environment: bool = False


def _now_ms() -> int:
    return int(time.time() * 1000)


class ContentWatcher:
    """Poll the two generated files and report when either changes.

    Polling runs only while generation is in progress (``set_generating``).
    A lesson change delivers the new HTML and its parsed parts; an environment
    change bumps ``environment_key`` so a viewer knows to reload the page.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        on_lesson_change: Optional[ChangeCallback] = None,
        on_environment_change: Optional[ChangeCallback] = None,
        interval: float = 3.0,
    ) -> None:
        self.http = http
        self.on_lesson_change = on_lesson_change
        self.on_environment_change = on_environment_change
        self.interval = interval
        self.lesson_content = ""
        self.lesson_parts: List[ContentPart] = []
        self.environment_key = _now_ms()
        self.generating = False
        self._previous_lesson = ""
        self._previous_environment = ""
        self._task: Optional[asyncio.Task] = None

    async def check(self) -> ContentChanges:
        changes = ContentChanges()
        try:
            lesson_response = await self.http.get(LESSON_URL)
            if lesson_response.is_success:
                content = lesson_response.text
                if content != self._previous_lesson:
                    logger.info("[LESSON] Content changed! Updating...")
                    self.lesson_content = content
                    self.lesson_parts = parse_environment_buttons(content)
                    self._previous_lesson = content
                    changes.lesson = True
                    await self._emit(self.on_lesson_change, content, self.lesson_parts)

            env_response = await self.http.get(ENVIRONMENT_URL)
            if env_response.is_success:
                env_content = env_response.text
                if env_content != self._previous_environment:
                    logger.info("[ENV] Content changed! Refreshing environment...")
                    self._previous_environment = env_content
                    self.environment_key = max(_now_ms(), self.environment_key + 1)
                    changes.environment = True
                    await self._emit(self.on_environment_change, self.environment_key)
        except httpx.HTTPError as e:
            logger.error(f"Error fetching content: {e}")
        return changes

    def set_generating(self, generating: bool) -> None:
        """Start polling while content is being generated, stop otherwise."""
        self.generating = generating
        if generating and self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._poll())
        elif not generating and self._task is not None:
            self._task.cancel()
            self._task = None

    async def force_refresh(self) -> ContentChanges:
        # Only the lesson cache is cleared so an unchanged environment is not reloaded
        logger.info("[REFRESH] Force refresh triggered!")
        self._previous_lesson = ""
        return await self.check()

    async def refresh(self) -> ContentChanges:
        self._previous_lesson = ""
        self._previous_environment = ""
        return await self.check()

    async def close(self) -> None:
        task, self._task = self._task, None
        self.generating = False
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _poll(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.check()

    @staticmethod
    async def _emit(callback: Optional[ChangeCallback], *args: Any) -> None:
        if callback is None:
            return
        try:
            outcome = callback(*args)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:  # noqa: BLE001
            logger.error(f"Content change handler failed: {e}")
