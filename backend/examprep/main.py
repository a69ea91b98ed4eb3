# examprep/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from examprep.api import routes_attempts, routes_sessions, routes_tests
from examprep.config import Settings, settings as default_settings
from examprep.errors import (
    EngagementConflictError,
    ExamPrepError,
    GenerationError,
    NotFoundError,
    PersistenceError,
    SessionStateError,
    ValidationError,
)
from examprep.services.container import Services, build_services
from examprep.services.db import init_db, ping

logging.basicConfig(
    level=getattr(logging, default_settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

_STATUS = (
    (EngagementConflictError, 409, "engagement_conflict"),
    (ValidationError, 422, "validation_error"),
    (NotFoundError, 404, "not_found_error"),
    (PersistenceError, 503, "persistence_error"),
    (GenerationError, 502, "generation_error"),
    (SessionStateError, 409, "session_state_error"),
)


async def exam_error_handler(request: Request, exc: ExamPrepError):
    status, kind = 500, "server_error"
    for cls, code, name in _STATUS:
        if isinstance(exc, cls):
            status, kind = code, name
            break
    if status >= 500:
        logger.error("[APP] %s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.warning("[APP] %s %s rejected: %s", request.method, request.url.path, exc)

    content = {"error": kind, "message": str(exc)}
    if isinstance(exc, EngagementConflictError):
        content["testId"] = exc.test_id
        content["topic"] = exc.topic
    return JSONResponse(status_code=status, content=content)


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("[APP] startup: wiring services …")
        owned = services is None
        svc = services or build_services(settings)
        if owned:
            init_db(svc.engine)
        app.state.services = svc
        logger.info("[APP] startup done.")
        try:
            yield
        finally:
            if owned:
                await svc.aclose()
            logger.info("[APP] shutdown: bye")

    app = FastAPI(title="ExamPrep API", lifespan=lifespan)
    if services is not None:
        app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True, allow_methods=["*"], allow_headers=["*"],
    )
    app.add_exception_handler(ExamPrepError, exam_error_handler)

    @app.get("/health")
    def health(request: Request):
        try:
            ping(request.app.state.services.engine)
            return {"ok": True}
        except Exception as e:
            logger.warning("[APP] health check failed: %s", e)
            return JSONResponse(status_code=503, content={"ok": False, "error": str(e)})

    app.include_router(routes_tests.router, prefix="/tests", tags=["Tests"])
    app.include_router(routes_sessions.router, prefix="/sessions", tags=["Sessions"])
    app.include_router(routes_attempts.router, prefix="/attempts", tags=["Attempts"])
    logger.info("[APP] Routers mounted: /tests, /sessions, /attempts")
    return app


app = create_app()
