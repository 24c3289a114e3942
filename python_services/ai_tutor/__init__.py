"""AI Tutor service package.

An orchestrator agent picks among four content tools (lesson plan, interactive
environment, environment update, direct answer) and its output is streamed to
the client as server-sent events:

- text: assistant prose
- tool_use / tool_result: tool calls and the content they produced
- done: final status with cost and token usage

Lesson and environment results are also written to ``GENERATED_DIR`` so the
client can poll them. The FastAPI router is exposed via `get_router()` in `api.py`.
"""

from .api import get_router

__all__ = ["get_router"]
