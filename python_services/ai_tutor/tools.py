"""Content-generation tools exposed to the tutor orchestrator.

Each tool formats a prompt, calls the text-generation client and returns a
JSON document wrapped in a tool-result content list. The registry converts
validation and generation failures into error results so the agent loop can
report them back to the model instead of aborting the turn.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Type

from pydantic import BaseModel, ValidationError

from shared.config import get_settings
from shared.llm_client import get_llm_client

from .models import (
    AnswerQuestionDirectlyInput,
    GenerateInteractiveEnvironmentInput,
    GenerateLessonPlanInput,
    UpdateInteractiveEnvironmentInput,
)

logger = logging.getLogger(__name__)

TOOL_SERVER_NAME = "tutor-tools"
TOOL_SERVER_VERSION = "1.0.0"
QUALIFIED_PREFIX = f"mcp__{TOOL_SERVER_NAME}__"
QUALIFIED_NAME_RE = re.compile(rf"mcp__{re.escape(TOOL_SERVER_NAME)}__(.+)")

GENERATE_LESSON_PLAN = "generate_lesson_plan"
GENERATE_INTERACTIVE_ENVIRONMENT = "generate_interactive_environment"
UPDATE_INTERACTIVE_ENVIRONMENT = "update_interactive_environment"
ANSWER_QUESTION_DIRECTLY = "answer_question_directly"

EDUCATIONAL_TOOLS = (
    GENERATE_LESSON_PLAN,
    GENERATE_INTERACTIVE_ENVIRONMENT,
    UPDATE_INTERACTIVE_ENVIRONMENT,
    ANSWER_QUESTION_DIRECTLY,
)


def bare_tool_name(name: str) -> str:
    """Strip the ``mcp__tutor-tools__`` prefix if present."""
    m = QUALIFIED_NAME_RE.match(name or "")
    return m.group(1) if m else name


def qualified_tool_name(name: str) -> str:
    return name if name.startswith(QUALIFIED_PREFIX) else f"{QUALIFIED_PREFIX}{name}"


@dataclass
class ToolResult:
    content: List[Dict[str, Any]]
    is_error: bool = False

    @classmethod
    def json(cls, payload: Dict[str, Any]) -> "ToolResult":
        return cls(content=[{"type": "text", "text": json.dumps(payload)}])

    @classmethod
    def error(cls, message: str) -> "ToolResult":
        return cls(content=[{"type": "text", "text": message}], is_error=True)


ToolHandler = Callable[[Any], Awaitable[ToolResult]]


@dataclass
class TutorTool:
    name: str
    description: str
    input_model: Type[BaseModel]
    handler: ToolHandler

    def schema(self, qualified: bool = True) -> Dict[str, Any]:
        """Tool definition in the shape the Anthropic Messages API expects."""
        return {
            "name": qualified_tool_name(self.name) if qualified else self.name,
            "description": self.description,
            "input_schema": self.input_model.model_json_schema(),
        }


@dataclass
class ToolRegistry:
    name: str = TOOL_SERVER_NAME
    version: str = TOOL_SERVER_VERSION
    tools: Dict[str, TutorTool] = field(default_factory=dict)

    def register(self, tool: TutorTool) -> TutorTool:
        self.tools[tool.name] = tool
        return tool

    def get(self, name: str) -> Optional[TutorTool]:
        return self.tools.get(bare_tool_name(name))

    def is_allowed(self, name: str, allowed: Optional[Iterable[str]]) -> bool:
        if allowed is None:
            return True
        allowed_bare = {bare_tool_name(a) for a in allowed}
        return bare_tool_name(name) in allowed_bare

    def schemas(self, allowed: Optional[Iterable[str]] = None) -> List[Dict[str, Any]]:
        allowed = list(allowed) if allowed is not None else None
        return [t.schema() for t in self.tools.values() if self.is_allowed(t.name, allowed)]

    async def call(self, name: str, arguments: Dict[str, Any]) -> ToolResult:
        tool = self.get(name)
        if tool is None:
            return ToolResult.error(f"Unknown tool: {name}")
        try:
            parsed = tool.input_model.model_validate(arguments or {})
        except ValidationError as e:
            logger.warning(f"Invalid input for {tool.name}: {e}")
            return ToolResult.error(f"Invalid input for {tool.name}: {e}")
        try:
            return await tool.handler(parsed)
        except Exception as e:  # noqa: BLE001
            logger.error(f"❌ Tool {tool.name} failed: {e}")
            return ToolResult.error(f"{tool.name} failed: {e}")


def tool(registry: ToolRegistry, name: str, description: str, input_model: Type[BaseModel]):
    """Decorator registering an async handler as a tutor tool."""

    def decorator(fn: ToolHandler) -> ToolHandler:
        registry.register(TutorTool(name=name, description=description, input_model=input_model, handler=fn))
        return fn

    return decorator


tutor_tools = ToolRegistry()


def build_lesson_prompt(args: GenerateLessonPlanInput) -> str:
    return f"""Create a {args.section} section for a {args.difficulty} level lesson about {args.topic}.
    Format the response as clean, educational HTML content with:
    - Appropriate headings (<h2>, <h3>) with neo-brutalist styling
    - Clear explanations in <p> tags
    - Examples where relevant
    - Bullet points using <ul> and <li> tags
    - Code blocks using <pre> and <code> tags if applicable
    - Interactive elements using special button syntax: [Button Text](button:type:description)
      - Available types: demo, quiz, exercise, visualization, simulation
      - Make descriptions VERY SPECIFIC and detailed for better environment generation
      - Example: [Explore Rock Formation](button:visualization:Interactive timeline showing igneous rock cooling and crystallization with temperature controls and mineral formation stages)
      - Example: [Rock Classification Quiz](button:quiz:Multiple choice quiz with 5 questions about identifying igneous, sedimentary, and metamorphic rocks with visual examples and explanations)
      - Example: [Mineral Identification Lab](button:exercise:Hands-on exercise where students click on rock samples to identify minerals, test hardness, and classify rock types with scoring system)

    Use neo-brutalist styling with:
    - Bold, chunky headings
    - High contrast colors
    - Strong visual hierarchy
    - Include 2-3 interactive buttons throughout the lesson

    CRITICAL: Make button descriptions extremely detailed and specific. Include:
    - Exact type of interaction (click, drag, input)
    - Visual elements that will be shown (charts, animations, timers)
    - Learning objectives and outcomes
    - UI elements (sliders, buttons, progress bars)
    - Scoring or feedback mechanisms
    - Step-by-step processes or sequences

    Return ONLY the HTML content (no DOCTYPE, html, head, or body tags - just the content div).
    Make it engaging and interactive for learning."""


def build_environment_prompt(args: GenerateInteractiveEnvironmentInput) -> str:
    return f"""Create p5.js JavaScript code for a {args.type} about {args.concept}.
    Requirements: {args.requirements}

    IMPORTANT CONSTRAINTS - The visualization will be displayed in a constrained iframe (1000x800px max):
    - Use createCanvas(950, 750) or smaller to fit properly
    - Position all UI elements WITHIN the canvas bounds
    - Place buttons and text at least 30px from canvas edges
    - Use readable font sizes (14-18px) for better visibility
    - Avoid external DOM elements (createButton, createSlider) - draw everything on canvas
    - Make interactive areas clearly visible with proper spacing

    Generate complete, working p5.js code that:
    - Uses setup() and draw() functions optimized for 950x750 canvas
    - Is educational and interactive with CANVAS-BASED UI
    - Includes clear visual feedback for interactions
    - Uses mouse coordinates for click detection within canvas
    - Has proper spacing and positioning for constrained view
    - Uses appropriate colors and contrasts for visibility
    - Includes on-screen instructions and labels

    Focus on creating a well-organized interface that works perfectly in the larger iframe space.
    Return only the JavaScript code without markdown code blocks."""


def build_update_prompt(args: UpdateInteractiveEnvironmentInput) -> str:
    return f"""Here is the current p5.js code:

    {args.current_code}

    The user wants to: {args.modification}

    Update the code to implement this change. Return only the complete updated JavaScript code without markdown code blocks.
    Maintain the overall structure and functionality while making the requested changes."""


def build_answer_prompt(args: AnswerQuestionDirectlyInput) -> str:
    context = f"Context: {args.context}" if args.context else ""
    return f"""Answer this question in a clear, educational way: {args.question}

    {context}

    Provide a helpful, accurate response that:
    - Directly answers the question
    - Is educational and easy to understand
    - Includes examples if helpful
    - Encourages further learning"""


@tool(
    tutor_tools,
    GENERATE_LESSON_PLAN,
    "Generate a lesson plan section in HTML format with interactive button markup",
    GenerateLessonPlanInput,
)
async def generate_lesson_plan(args: GenerateLessonPlanInput) -> ToolResult:
    settings = get_settings()
    logger.info(f"📚 Generating lesson section '{args.section}' for {args.topic} ({args.difficulty})")
    text = await get_llm_client().generate_text(
        build_lesson_prompt(args),
        model=settings.lesson_model,
        temperature=0.7,
        max_tokens=1500,
    )
    return ToolResult.json({"content": text, "section": args.section, "topic": args.topic})


@tool(
    tutor_tools,
    GENERATE_INTERACTIVE_ENVIRONMENT,
    "Generate p5.js code for interactive visualizations",
    GenerateInteractiveEnvironmentInput,
)
async def generate_interactive_environment(args: GenerateInteractiveEnvironmentInput) -> ToolResult:
    settings = get_settings()
    logger.info(f"🎮 Generating {args.type} environment for {args.concept}")
    code = await get_llm_client().generate_text(
        build_environment_prompt(args),
        model=settings.coder_model,
        temperature=0.3,
        max_tokens=2000,
    )
    return ToolResult.json({"code": code, "concept": args.concept, "type": args.type})


@tool(
    tutor_tools,
    UPDATE_INTERACTIVE_ENVIRONMENT,
    "Update existing p5.js code based on user requests",
    UpdateInteractiveEnvironmentInput,
)
async def update_interactive_environment(args: UpdateInteractiveEnvironmentInput) -> ToolResult:
    settings = get_settings()
    logger.info(f"🛠️ Updating environment: {args.modification}")
    code = await get_llm_client().generate_text(
        build_update_prompt(args),
        model=settings.coder_model,
        temperature=0.3,
        max_tokens=2000,
    )
    return ToolResult.json({"code": code, "modification": args.modification})


@tool(
    tutor_tools,
    ANSWER_QUESTION_DIRECTLY,
    "Provide direct text responses to user questions",
    AnswerQuestionDirectlyInput,
)
async def answer_question_directly(args: AnswerQuestionDirectlyInput) -> ToolResult:
    settings = get_settings()
    logger.info(f"💬 Answering question: {args.question[:80]}")
    answer = await get_llm_client().generate_text(
        build_answer_prompt(args),
        model=settings.lesson_model,
        temperature=0.6,
        max_tokens=1000,
    )
    return ToolResult.json({"answer": answer, "question": args.question})
