from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from screener.types import CamelModel, CandidateType, ChatMessage


class AnalyzeRequest(BaseModel):
    messages: list[ChatMessage] = Field(min_length=1)
    temperature: float | None = None


class PositionUpdateRequest(CamelModel):
    id: str
    name: str
    job_description: str | None = None


class HistoryUpdateRequest(CamelModel):
    id: str
    assigned_to: str | None = None


class SuccessResponse(BaseModel):
    success: bool = True


class StatusResponse(CamelModel):
    has_database: bool
    db_url_length: int
    app_env: str
    timestamp: int


class LoginRequest(BaseModel):
    username: str
    password: str


class FormUpdateRequest(CamelModel):
    job_description: str | None = None
    special_requirements: str | None = None
    candidate_type: CandidateType | None = None
    selected_position_id: str | None = None


class SessionResponse(CamelModel):
    authenticated: bool
    user: dict[str, Any] | None = None
    job_description: str = ""
    special_requirements: str = ""
    candidate_type: CandidateType = "experienced"
    selected_position_id: str = ""
    is_analyzing: bool = False
    error: str | None = None
    files: list[dict[str, Any]] = Field(default_factory=list)


class AnalyzeBatchResponse(CamelModel):
    record: dict[str, Any] | None = None
    files: list[dict[str, Any]] = Field(default_factory=list)
    error: str | None = None
