from __future__ import annotations

import logging
from typing import AsyncGenerator, Callable

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse, StreamingResponse

from shared.models import ErrorResponse

from .agent import TutorOrchestrator, build_context_prompt, run_orchestrator_test
from .content_store import ContentStore, get_content_store
from .models import GenerateEnvironmentRequest, LearnRequest, WriteContentRequest
from .results import classify_tool_result
from .state import session_state
from .streaming import StreamTranslator
from .tools import GENERATE_INTERACTIVE_ENVIRONMENT, tutor_tools

logger = logging.getLogger(__name__)

OrchestratorFactory = Callable[[], TutorOrchestrator]

# Lesson buttons use a wider vocabulary than the environment generator accepts
BUTTON_TO_ENVIRONMENT_TYPE = {
    "demo": "interactive-demo",
    "quiz": "game",
    "exercise": "interactive-demo",
    "visualization": "visualization",
    "simulation": "simulation",
}


def get_orchestrator_factory() -> OrchestratorFactory:
    return TutorOrchestrator


def _error(status_code: int, error: str, details: str) -> JSONResponse:
    body = ErrorResponse(error=error, details=details).model_dump(mode="json")
    return JSONResponse(status_code=status_code, content=body)


def get_router() -> APIRouter:
    router = APIRouter(prefix="/api", tags=["ai_tutor"])

    @router.post("/learn")
    async def learn(
        req: LearnRequest,
        orchestrator_factory: OrchestratorFactory = Depends(get_orchestrator_factory),
        store: ContentStore = Depends(get_content_store),
    ):
        try:
            orchestrator = orchestrator_factory()
            prompt = build_context_prompt(req)
        except Exception as e:  # noqa: BLE001
            logger.error(f"Error in /api/learn: {e}")
            return _error(500, "Internal server error", str(e))

        session_id = req.session_id

        def persist(tool_name: str, result) -> None:
            update = classify_tool_result(tool_name, result)
            if not update.content:
                return
            if update.kind == "lesson":
                store.write_lesson(update.content)
                session_state.record_lesson(session_id, update.content, (update.data or {}).get("topic"))
            elif update.kind == "environment":
                store.write_environment(update.content)
                session_state.record_environment(session_id, update.content)

        translator = StreamTranslator(on_tool_result=persist)

        async def event_stream() -> AsyncGenerator[str, None]:
            async with session_state.lock(session_id):
                st = session_state.ensure(session_id)
                st["turns"] += 1
                logger.info(f"📡 Learn turn {st['turns']} for {session_id}")
                async for frame in translator.translate(orchestrator.query(prompt)):
                    yield frame

        return StreamingResponse(
            event_stream(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",
            },
        )

    @router.post("/write-content")
    async def write_content(req: WriteContentRequest, store: ContentStore = Depends(get_content_store)):
        logger.info(f"📝 Direct API: Writing {req.type} content...")
        if req.type == "lesson":
            success = store.write_lesson(req.content)
        else:
            success = store.write_environment(req.content)
        body = {
            "success": success,
            "message": "Content written successfully" if success else "Failed to write content",
            "type": req.type,
            "contentLength": len(req.content),
        }
        return JSONResponse(status_code=200 if success else 500, content=body)

    @router.post("/reset-content")
    async def reset_content(store: ContentStore = Depends(get_content_store)):
        try:
            store.reset()
        except OSError as e:
            logger.error(f"❌ Failed to reset content: {e}")
            return JSONResponse(status_code=500, content={"success": False, "error": "Failed to reset content"})
        return {"success": True, "message": "Content reset successfully"}

    @router.post("/generate-environment")
    async def generate_environment(
        req: GenerateEnvironmentRequest, store: ContentStore = Depends(get_content_store)
    ):
        env_type = BUTTON_TO_ENVIRONMENT_TYPE[req.type]
        logger.info(f"🎮 Button-triggered {req.type} environment")
        result = await tutor_tools.call(
            GENERATE_INTERACTIVE_ENVIRONMENT,
            {
                "concept": req.description or req.prompt,
                "type": env_type,
                "requirements": req.prompt,
            },
        )
        if result.is_error:
            raise HTTPException(status_code=502, detail=result.content[0]["text"])

        update = classify_tool_result(GENERATE_INTERACTIVE_ENVIRONMENT, result.content[0]["text"])
        if not update.content:
            raise HTTPException(status_code=502, detail="Environment generator returned no code")
        if not store.write_environment(update.content):
            raise HTTPException(status_code=500, detail="Failed to write environment")
        return {"success": True, "type": req.type, "codeLength": len(update.content)}

    @router.get("/test-orchestrator")
    async def test_orchestrator(orchestrator_factory: OrchestratorFactory = Depends(get_orchestrator_factory)):
        try:
            return await run_orchestrator_test(orchestrator_factory())
        except Exception as e:  # noqa: BLE001
            logger.error(f"Error in orchestrator test: {e}")
            return _error(500, "Test failed", str(e))

    @router.get("/session/{session_id}")
    async def get_session(session_id: str):
        st = session_state.get(session_id)
        if st is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return {
            "sessionId": session_id,
            "topic": st.get("topic"),
            "turns": st.get("turns", 0),
            "lesson": st.get("lesson"),
            "environmentCode": st.get("environment_code"),
        }

    return router
