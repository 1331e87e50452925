from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class _Camel(BaseModel):
    # The browser client speaks camelCase; field names mirror it directly
    model_config = ConfigDict(extra="ignore")


class SectionConfig(_Camel):
    name: str
    questions: int
    totalSeconds: Optional[int] = None
    perQuestionSeconds: Optional[int] = None
    viewSeconds: Optional[int] = None
    typeSeconds: Optional[int] = None
    instructions: str = ""


class ConfigResponse(_Camel):
    """Response body for GET /api/config."""

    sectionOrder: List[str]
    sectionConfig: Dict[str, SectionConfig]
    totalSeconds: int


class StartResponse(_Camel):
    """Response body for POST /api/start."""

    userId: str
    startedAt: int
    sectionKey: str
    sectionStartedAt: int
    questionIndex: int


class StatusResponse(_Camel):
    """Response body for GET /api/status."""

    now: int
    sectionKey: str
    sectionIndex: int
    sectionRemaining: int
    totalRemaining: int
    sectionStartedAt: int
    questionIndex: int
    completed: bool


class AdvanceRequest(_Camel):
    """Request body for POST /api/advance."""

    userId: Optional[str] = None


class AdvanceResponse(_Camel):
    """Response body for POST /api/advance."""

    sectionKey: str
    sectionStartedAt: int
    questionIndex: int
    completed: bool


class ResponseAck(BaseModel):
    """Response body for POST /api/response."""

    ok: bool
    stored: Optional[str] = None


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    status: str
    active_sessions: int
    uptime_seconds: int
