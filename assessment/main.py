import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, File, Form, Query, Request, UploadFile
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from assessment.catalog import load_catalog
from assessment.config import settings
from assessment.logger import setup_logger
from assessment.models import (
    AdvanceRequest,
    AdvanceResponse,
    ConfigResponse,
    HealthResponse,
    ResponseAck,
    StartResponse,
    StatusResponse,
)
from assessment.service import SessionService
from assessment.storage import ResponseStore
from assessment.store import SessionStore
from assessment.utils.exceptions import (
    AssessmentError,
    InvalidStateError,
    SessionNotFoundError,
    StorageError,
)
from assessment.utils.helpers import parse_bool

logger = setup_logger(__name__)


def create_app(
    service: Optional[SessionService] = None,
    responses: Optional[ResponseStore] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        service: Session service to use; built from settings when None
        responses: Answer store to use; built from settings when None
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifecycle manager: startup and shutdown."""
        logger.info("🚀 Starting assessment service")
        if app.state.service is None:
            catalog = load_catalog(settings.catalog_path, settings.total_test_seconds)
            app.state.service = SessionService(
                SessionStore(),
                catalog,
                retention_seconds=settings.session_retention_seconds,
            )
        if app.state.responses is None:
            app.state.responses = ResponseStore(
                Path(settings.data_dir), Path(settings.upload_dir)
            )
        catalog = app.state.service.catalog
        logger.info(
            f"   Config: sections={''.join(catalog.section_order)}, "
            f"total={catalog.total_seconds}s"
        )
        yield
        logger.info(f"🛑 Shutting down ({len(app.state.service.store)} session(s) in memory)")

    app = FastAPI(title="Timed Assessment", version="0.1.0", lifespan=lifespan)
    app.state.service = service
    app.state.responses = responses
    app.state.started = time.time()

    @app.get("/api/config", response_model=ConfigResponse)
    async def get_config(request: Request):
        """Section order, per-section budgets and the global budget."""
        return request.app.state.service.catalog.to_public_dict()

    @app.post("/api/start", response_model=StartResponse)
    async def start_session(request: Request):
        """Create a session positioned at the first question."""
        service: SessionService = request.app.state.service
        record = service.create_session()
        return record.to_start_dict(service.catalog)

    @app.get("/api/status", response_model=StatusResponse)
    async def get_status(request: Request, userId: Optional[str] = Query(None)):
        """Authoritative remaining time for the current section and the whole test."""
        return request.app.state.service.get_status(userId)

    @app.post("/api/advance", response_model=AdvanceResponse)
    async def advance_session(body: AdvanceRequest, request: Request):
        """Move the session to its next question, next section, or completion."""
        service: SessionService = request.app.state.service
        record = service.advance_session(body.userId)
        return record.to_advance_dict(service.catalog)

    @app.post("/api/response", response_model=ResponseAck)
    async def submit_response(
        request: Request,
        userId: Optional[str] = Form(None),
        section: str = Form(""),
        questionId: str = Form(""),
        responseType: str = Form("text"),
        responseData: Optional[str] = Form(None),
        timeTaken: Optional[str] = Form(None),
        autoSubmitted: Optional[str] = Form(None),
        audio: Optional[UploadFile] = File(None),
    ):
        """
        Store an answer. May be called any number of times per question.
        """
        responses: ResponseStore = request.app.state.responses

        stored = responseData
        if audio is not None:
            content = await audio.read()
            stored = responses.save_audio(
                content, userId, section, questionId, audio.filename
            )

        responses.append(
            {
                "userId": userId,
                "section": section,
                "questionId": questionId,
                "responseType": responseType,
                "responseData": stored,
                "timeTaken": timeTaken,
                "autoSubmitted": parse_bool(autoSubmitted),
            }
        )
        return ResponseAck(ok=True, stored=stored)

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """Health check endpoint."""
        return HealthResponse(
            status="healthy",
            active_sessions=len(request.app.state.service.store),
            uptime_seconds=int(time.time() - request.app.state.started),
        )

    @app.exception_handler(SessionNotFoundError)
    async def not_found_handler(request: Request, exc: SessionNotFoundError):
        logger.warning(f"⚠️ {exc}")
        return JSONResponse(status_code=404, content={"detail": "Session not found"})

    @app.exception_handler(InvalidStateError)
    async def invalid_state_handler(request: Request, exc: InvalidStateError):
        logger.warning(f"⚠️ {exc}")
        return JSONResponse(status_code=400, content={"detail": "Invalid session"})

    @app.exception_handler(StorageError)
    async def storage_exception_handler(request: Request, exc: StorageError):
        logger.error(f"🔥 Storage Error: {exc}")
        return JSONResponse(status_code=500, content={"detail": "Failed to store response"})

    @app.exception_handler(AssessmentError)
    async def assessment_exception_handler(request: Request, exc: AssessmentError):
        """Handle custom application exceptions."""
        logger.error(f"🔥 Application Error: {exc}")
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.error(f"🔥 Unexpected Error: {exc}", exc_info=True)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    # Browser UI, mounted last so the API routes take precedence
    if settings.static_dir and Path(settings.static_dir).is_dir():
        app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="ui")

    return app


app = create_app()
