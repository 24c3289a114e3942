#!/usr/bin/env python3
"""
Start AI Tutor Service - lesson and interactive environment generation
Standalone script to run the AI Tutor Service
"""

import sys
import logging
from pathlib import Path

# Add current directory to Python path
sys.path.append(str(Path(__file__).parent))

from shared.config import get_settings, debug_settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main():
    """Start the AI Tutor Service"""
    settings = get_settings()

    if not settings.anthropic_api_key:
        logger.error("❌ ANTHROPIC_API_KEY is required for the tutor orchestrator")
        sys.exit(1)

    generation_keys = {
        'CEREBRAS_API_KEY': settings.cerebras_api_key,
        'OPENAI_API_KEY': settings.openai_api_key,
    }
    available = [name for name, key in generation_keys.items() if key]
    if not settings.cerebras_api_key and not settings.allow_provider_fallback:
        logger.error("❌ CEREBRAS_API_KEY not set and ALLOW_PROVIDER_FALLBACK is disabled")
        logger.error("Set CEREBRAS_API_KEY, or enable fallback with OPENAI_API_KEY/ANTHROPIC_API_KEY")
        sys.exit(1)
    logger.info(f"✅ Text generation keys configured: {', '.join(available) or 'fallback only'}")

    if settings.debug:
        debug_settings()

    Path(settings.generated_dir).mkdir(parents=True, exist_ok=True)

    logger.info("Starting AI Tutor Service...")
    logger.info(f"Port: {settings.service_port}")
    logger.info(f"Host: {settings.service_host}")

    try:
        from ai_tutor_service.main import app
        import uvicorn

        uvicorn.run(
            app,
            host=settings.service_host,
            port=settings.service_port,
            log_level=settings.log_level.lower()
        )

    except ImportError as e:
        logger.error(f"Failed to import AI Tutor Service: {e}")
        logger.error("Make sure all dependencies are installed: pip install -e .")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Failed to start AI Tutor Service: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
