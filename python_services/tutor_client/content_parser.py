"""Split lesson HTML into text parts and environment buttons.

Lessons mark launchable environments with ``[Label](button:type:description)``
where type is one of demo, quiz, exercise, visualization or simulation.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Literal, Union

from ai_tutor.results import ContentUpdate, classify_tool_result  # noqa: F401

ENV_BUTTON_RE = re.compile(
    r"\[([^\]]+)\]\(button:(demo|quiz|exercise|visualization|simulation):([^)]+)\)"
)

ENVIRONMENT_ICONS = {
    "demo": "🎮",
    "quiz": "📝",
    "exercise": "💪",
    "visualization": "📊",
    "simulation": "🔬",
}


@dataclass
class TextPart:
    content: str
    type: Literal["text"] = "text"


@dataclass
class EnvironmentButtonPart:
    env_type: str
    description: str
    prompt: str
    label: str
    type: Literal["environment-button"] = "environment-button"

    @property
    def icon(self) -> str:
        return ENVIRONMENT_ICONS.get(self.env_type, "")

    @property
    def title(self) -> str:
        return self.label or f"Interactive {self.env_type.capitalize()}"

    @property
    def launch_text(self) -> str:
        return f"Launch {self.env_type.capitalize()}"


ContentPart = Union[TextPart, EnvironmentButtonPart]


def parse_environment_buttons(content: str) -> List[ContentPart]:
    parts: List[ContentPart] = []
    last_index = 0

    for match in ENV_BUTTON_RE.finditer(content):
        if match.start() > last_index:
            parts.append(TextPart(content=content[last_index:match.start()]))

        label, env_type, description = match.group(1), match.group(2), match.group(3)
        # The description doubles as the generation prompt
        parts.append(
            EnvironmentButtonPart(env_type=env_type, description=description, prompt=description, label=label)
        )
        last_index = match.end()

    if last_index < len(content):
        parts.append(TextPart(content=content[last_index:]))

    return parts


def environment_buttons(content: str) -> List[EnvironmentButtonPart]:
    return [p for p in parse_environment_buttons(content) if isinstance(p, EnvironmentButtonPart)]
