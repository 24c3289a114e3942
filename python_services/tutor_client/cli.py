#!/usr/bin/env python3
"""
Terminal front end for the AI tutor.

Starts a learning session for a topic, prints the tutor's replies and the
lesson as it is generated, and lets the learner launch the lesson's
interactive environments by number.
"""

import argparse
import asyncio
import logging
import os
import re
from typing import List, Optional

import httpx

from .content_parser import EnvironmentButtonPart, TextPart, environment_buttons
from .stream_reader import DEFAULT_BASE_URL, LearningSession, TutorClient, TutorClientError
from .watcher import ContentWatcher

logger = logging.getLogger(__name__)

TAG_RE = re.compile(r"<[^>]+>")
HELP_TEXT = """Commands:
  /launch N   launch the N-th interactive environment of the lesson
  /refresh    re-read the generated lesson and environment
  /reset      reset generated content to the placeholders
  /quit       leave the session
Anything else is sent to the tutor."""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Learn a topic with the AI tutor")
    parser.add_argument("topic", nargs="?", default="", help="Topic to start learning about")
    parser.add_argument(
        "--server",
        default=os.environ.get("AI_TUTOR_URL", DEFAULT_BASE_URL),
        help="Base URL of the AI tutor service",
    )
    parser.add_argument("--reset", action="store_true", help="Reset generated content before starting")
    parser.add_argument("--interval", type=float, default=3.0, help="Polling interval while generating (seconds)")
    parser.add_argument("--verbose", action="store_true", help="Show debug logging")
    return parser


def render_lesson(parts: List) -> str:
    lines = []
    button_no = 0
    for part in parts:
        if isinstance(part, TextPart):
            text = TAG_RE.sub("", part.content).strip()
            if text:
                lines.append(text)
        elif isinstance(part, EnvironmentButtonPart):
            button_no += 1
            lines.append(f"  [{button_no}] {part.icon} {part.title} ({part.launch_text})")
            lines.append(f"      {part.description}")
    return "\n".join(lines)


def print_lesson(content: str, parts: List) -> None:
    print("\n=== 📚 LESSON CONTENT ===")
    print(render_lesson(parts))
    print("=========================\n")


def print_environment(environment_key: int) -> None:
    print(f"🎮 Interactive environment updated (open /generated/interactive-environment.html, key {environment_key})")


async def launch_environment(client: TutorClient, lesson: str, arg: str) -> None:
    buttons = environment_buttons(lesson)
    try:
        button = buttons[int(arg) - 1]
    except (ValueError, IndexError):
        print(f"No environment #{arg}; the lesson has {len(buttons)}")
        return
    print(f"⚡ Generating {button.env_type}: {button.title}...")
    try:
        await client.generate_environment(button.env_type, button.prompt, button.description)
    except (httpx.HTTPError, TutorClientError) as e:
        print(f"❌ Error generating environment: {e}")


async def run(args: argparse.Namespace) -> None:
    async with httpx.AsyncClient(base_url=args.server, timeout=httpx.Timeout(30.0, read=None)) as http:
        client = TutorClient(http=http)
        watcher = ContentWatcher(
            http,
            on_lesson_change=print_lesson,
            on_environment_change=print_environment,
            interval=args.interval,
        )
        session = LearningSession(client, watcher=watcher)

        if args.reset:
            await client.reset_content()
        await watcher.check()

        print(f"LEARNING: {args.topic.upper() or 'ANYTHING'}")
        print(HELP_TEXT)

        try:
            if args.topic:
                reply = await session.start(args.topic)
                if reply is not None and reply.content:
                    print(f"AI TUTOR: {reply.content}\n")

            while True:
                try:
                    line = (await asyncio.to_thread(input, "> ")).strip()
                except EOFError:
                    break
                if not line:
                    continue
                if line in ("/quit", "/exit"):
                    break
                if line == "/refresh":
                    await watcher.refresh()
                    continue
                if line == "/reset":
                    result = await client.reset_content()
                    print(result.get("message") or result.get("error"))
                    continue
                if line.startswith("/launch"):
                    await launch_environment(client, watcher.lesson_content, line[len("/launch"):].strip())
                    await watcher.refresh()
                    continue

                print("AI TUTOR: Thinking...")
                reply = await session.send(line)
                if reply is not None and reply.content:
                    print(f"AI TUTOR: {reply.content}\n")
                if session.last_answer:
                    print(f"💡 {session.last_answer}\n")
                    session.last_answer = None
        finally:
            await watcher.close()


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        print("\nBye!")


if __name__ == "__main__":
    main()
