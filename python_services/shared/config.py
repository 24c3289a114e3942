"""
Shared configuration for the AI tutor services.
"""

import json
import logging
import os
from typing import Annotated, List, Optional
from pathlib import Path
from dotenv import load_dotenv, find_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = logging.getLogger(__name__)

# Load environment variables from python_services/.env, regardless of CWD
base_dir = Path(__file__).resolve().parents[1]  # points to python_services/
dotenv_path = base_dir / ".env"
example_path = base_dir / "env.example"

loaded = False
if dotenv_path.exists():
    load_dotenv(dotenv_path, override=True)
    logger.info(f"✅ Loaded environment variables from {dotenv_path}")
    loaded = True
else:
    discovered = find_dotenv(usecwd=True)
    if discovered:
        load_dotenv(discovered, override=True)
        logger.info(f"✅ Loaded environment variables from {discovered}")
        loaded = True

# env.example never overrides real env values
if not loaded and example_path.exists():
    load_dotenv(example_path, override=False)
    logger.info(f"✅ Loaded environment variables from sample {example_path}")


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # API Keys
    anthropic_api_key: Optional[str] = Field(default=None, alias="ANTHROPIC_API_KEY")
    cerebras_api_key: Optional[str] = Field(default=None, alias="CEREBRAS_API_KEY")
    cerebras_base_url: str = Field(default="https://api.cerebras.ai/v1", alias="CEREBRAS_BASE_URL")
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    anthropic_fallback_model: str = Field(default="claude-3-5-haiku-20241022", alias="ANTHROPIC_FALLBACK_MODEL")

    # Orchestrator agent
    orchestrator_model: str = Field(default="claude-sonnet-4-20250514", alias="ORCHESTRATOR_MODEL")
    orchestrator_max_turns: int = Field(default=5, alias="ORCHESTRATOR_MAX_TURNS")
    orchestrator_max_tokens: int = Field(default=4096, alias="ORCHESTRATOR_MAX_TOKENS")
    # USD per million tokens, used for the cost reported in the "done" event
    orchestrator_input_cost_per_mtok: float = Field(default=3.0, alias="ORCHESTRATOR_INPUT_COST_PER_MTOK")
    orchestrator_output_cost_per_mtok: float = Field(default=15.0, alias="ORCHESTRATOR_OUTPUT_COST_PER_MTOK")

    # Content generation tools
    lesson_model: str = Field(default="gpt-oss-120b", alias="LESSON_MODEL")
    coder_model: str = Field(default="qwen-3-coder-480b", alias="CODER_MODEL")
    allow_provider_fallback: bool = Field(default=False, alias="ALLOW_PROVIDER_FALLBACK")

    # Generated content served to the client
    generated_dir: str = Field(default="./public/generated", alias="GENERATED_DIR")

    # Sessions kept in memory for /api/session recovery
    max_sessions: int = Field(default=500, alias="MAX_SESSIONS")

    # Service Configuration
    service_name: str = Field(default="ai-tutor", alias="SERVICE_NAME")
    service_host: str = Field(default="0.0.0.0", alias="AI_TUTOR_HOST")
    service_port: int = Field(default=8006, alias="AI_TUTOR_PORT")
    # JSON list or comma-separated origins
    cors_origins: Annotated[List[str], NoDecode] = Field(default_factory=lambda: ["*"], alias="CORS_ORIGINS")
    debug: bool = Field(default=False, alias="DEBUG")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_cors_origins(cls, value):
        if isinstance(value, str):
            value = value.strip()
            if value.startswith("["):
                return json.loads(value)
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    def __init__(self, **data):
        super().__init__(**data)
        # Generic SERVICE_PORT wins when the service-specific one is unset
        if not os.getenv("AI_TUTOR_PORT") and os.getenv("SERVICE_PORT"):
            self.service_port = int(os.getenv("SERVICE_PORT"))


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the current settings instance."""
    return settings


def debug_settings():
    """Log which providers are configured without exposing full keys."""
    settings = get_settings()
    logger.info("🔍 Current Settings:")
    logger.info(f"  Anthropic API Key: {'✅ Set' if settings.anthropic_api_key else '❌ Not set'}")
    logger.info(f"  Cerebras API Key: {'✅ Set' if settings.cerebras_api_key else '❌ Not set'}")
    logger.info(f"  OpenAI API Key: {'✅ Set' if settings.openai_api_key else '❌ Not set'}")
    logger.info(f"  Orchestrator Model: {settings.orchestrator_model}")
    logger.info(f"  Lesson Model: {settings.lesson_model}")
    logger.info(f"  Coder Model: {settings.coder_model}")
    logger.info(f"  Generated Dir: {settings.generated_dir}")
    logger.info(f"  Service Port: {settings.service_port}")
    logger.info(f"  Debug Mode: {settings.debug}")
    logger.info(f"  Log Level: {settings.log_level}")
