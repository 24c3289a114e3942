from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


Difficulty = Literal["beginner", "intermediate", "advanced"]
EnvironmentType = Literal["visualization", "simulation", "game", "interactive-demo"]
ButtonType = Literal["demo", "quiz", "exercise", "visualization", "simulation"]
StreamEventType = Literal["text", "tool_use", "tool_result", "done", "error"]


class CamelModel(BaseModel):
    # Accept the browser's camelCase keys as well as snake_case
    model_config = ConfigDict(populate_by_name=True)


# Request bodies


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class LearnRequest(CamelModel):
    session_id: str = Field(alias="sessionId")
    chat_history: List[ChatMessage] = Field(alias="chatHistory")
    current_lesson_section: Optional[str] = Field(default=None, alias="currentLessonSection")
    current_environment_code: Optional[str] = Field(default=None, alias="currentEnvironmentCode")
    user_input: str = Field(alias="userInput")


class WriteContentRequest(BaseModel):
    type: Literal["lesson", "environment"]
    content: str


class GenerateEnvironmentRequest(BaseModel):
    type: ButtonType
    prompt: str
    description: Optional[str] = None


# Tool inputs (the JSON schema handed to the orchestrator is derived from these)


class GenerateLessonPlanInput(BaseModel):
    topic: str = Field(description="The topic to create a lesson about")
    section: str = Field(
        description='Which section of the lesson to generate (e.g., "Introduction", "Core Concepts", "Examples")'
    )
    difficulty: Difficulty = Field(description="The difficulty level for the lesson")


class GenerateInteractiveEnvironmentInput(BaseModel):
    concept: str = Field(description='The concept to visualize (e.g., "sorting algorithms", "physics simulation")')
    type: EnvironmentType = Field(description="Type of interactive environment")
    requirements: str = Field(description="Specific requirements for the visualization")


class UpdateInteractiveEnvironmentInput(CamelModel):
    current_code: str = Field(alias="currentCode", description="The current p5.js code")
    modification: str = Field(description="What changes the user wants to make")


class AnswerQuestionDirectlyInput(BaseModel):
    question: str = Field(description="The user's question")
    context: Optional[str] = Field(
        default=None, description="Additional context about the current lesson or topic"
    )


# Agent message stream


class TextBlock(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolUseBlock(BaseModel):
    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: Dict[str, Any] = Field(default_factory=dict)


class ToolResultBlock(BaseModel):
    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    # Either a plain string or a list of {"type": "text", "text": ...} parts
    content: Union[str, List[Dict[str, Any]], None] = None
    is_error: bool = False


ContentBlock = Annotated[Union[TextBlock, ToolUseBlock, ToolResultBlock], Field(discriminator="type")]


class AssistantMessage(BaseModel):
    type: Literal["assistant"] = "assistant"
    content: List[ContentBlock] = Field(default_factory=list)
    model: Optional[str] = None


class UserMessage(BaseModel):
    type: Literal["user"] = "user"
    content: List[ContentBlock] = Field(default_factory=list)


class ResultMessage(BaseModel):
    type: Literal["result"] = "result"
    subtype: Literal["success", "error_max_turns", "error_during_execution"]
    result: Optional[str] = None
    total_cost_usd: float = 0.0
    usage: Dict[str, int] = Field(default_factory=dict)
    num_turns: int = 0
    is_error: bool = False


AgentMessage = Union[AssistantMessage, UserMessage, ResultMessage]


# Server-sent events


class StreamEvent(BaseModel):
    type: StreamEventType
    content: Optional[str] = None  # text
    tool_name: Optional[str] = None  # tool_use / tool_result
    input: Optional[Dict[str, Any]] = None  # tool_use
    result: Optional[Any] = None  # tool_result / done
    success: Optional[bool] = None  # done
    error: Optional[str] = None  # done (failure)
    cost: Optional[float] = None
    usage: Optional[Dict[str, Any]] = None
    message: Optional[str] = None  # error
