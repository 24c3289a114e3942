"""
AI Tutor Service - Main FastAPI application.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
import uvicorn

from shared.config import get_settings
from shared.llm_client import get_llm_client
from shared.models import HealthCheck
from ai_tutor import get_router
from ai_tutor.content_store import get_content_store

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    logger.info("AI Tutor Service starting up...")
    store = get_content_store()
    store.ensure_initialized()
    logger.info(f"Generated content directory: {store.base_dir}")

    yield

    logger.info("AI Tutor Service shutting down...")


app = FastAPI(
    title="AI Tutor Service",
    description="Interactive tutor that streams lessons and p5.js environments",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(get_router())

# StaticFiles requires the directory to exist when mounted
generated_dir = Path(settings.generated_dir)
generated_dir.mkdir(parents=True, exist_ok=True)
app.mount("/generated", StaticFiles(directory=generated_dir), name="generated")


@app.get("/health", response_model=HealthCheck)
async def health_check():
    """Health check endpoint."""
    return HealthCheck(service=settings.service_name, status="healthy")


@app.get("/providers", response_model=List[str])
async def get_available_providers():
    """Get list of configured text-generation providers."""
    providers = get_llm_client().get_available_providers()
    return [provider.value for provider in providers]


if __name__ == "__main__":
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        "ai_tutor_service.main:app",
        host=settings.service_host,
        port=settings.service_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
