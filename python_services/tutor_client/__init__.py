"""Client-side counterpart of the AI tutor service.

Consumes the ``/api/learn`` event stream, keeps the chat and the current
lesson/environment in a ``LearningSession``, watches the generated files for
changes and parses lesson button markup.
"""

from .content_parser import EnvironmentButtonPart, TextPart, classify_tool_result, parse_environment_buttons
from .stream_reader import LearningSession, TutorClient, TutorClientError
from .watcher import ContentWatcher

__all__ = [
    "ContentWatcher",
    "EnvironmentButtonPart",
    "LearningSession",
    "TextPart",
    "TutorClient",
    "TutorClientError",
    "classify_tool_result",
    "parse_environment_buttons",
]
