from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

CandidateType = Literal["experienced", "intern"]
FileStatus = Literal["pending", "analyzing", "success", "error"]
Role = Literal["admin", "member"]
Recommendation = Literal["强烈推荐", "推荐", "待定", "不推荐"]

HARD_GATE_SCORE_CAP = 59
ADMIN_USER_ID = "admin"


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class CandidateInfo(CamelModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    university: str = ""
    graduation_year: str = ""
    major: str = ""
    experience_years: int | float = 0

    @field_validator("name", "university", "graduation_year", "major", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (int, float)):
            return str(value)
        return value


class AnalysisDetail(CamelModel):
    model_config = ConfigDict(frozen=True)

    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    risks: str = ""
    stability: str = ""
    career_progression: str = ""
    skill_recency: str = ""


class AnalysisResult(CamelModel):
    model_config = ConfigDict(frozen=True)

    candidate_info: CandidateInfo
    match_score: int = Field(ge=0, le=100)
    confidence: int = Field(ge=0, le=100)
    summary: str
    analysis: AnalysisDetail
    interview_questions: list[str] = Field(default_factory=list)
    recommendation: Recommendation
    hard_requirements_met: bool
    hard_requirements_note: str | None = None

    @field_validator("match_score", "confidence", mode="before")
    @classmethod
    def round_score(cls, value: Any) -> Any:
        if isinstance(value, float):
            return round(value)
        return value

    @field_validator("recommendation", mode="before")
    @classmethod
    def strip_recommendation(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ModelResponse(BaseModel):
    content: str
    raw: dict[str, Any] = Field(default_factory=dict)


class Position(CamelModel):
    id: str
    name: str
    created_at: int = 0
    job_description: str | None = None


class User(CamelModel):
    id: str
    username: str
    password: str
    role: Role = "member"
    position: str = ""
    created_at: int = 0


class HistoryEntry(CamelModel):
    file_name: str
    result: AnalysisResult


class HistoryRecord(CamelModel):
    id: str
    timestamp: int
    position_name: str
    job_description: str
    special_requirements: str = ""
    results: list[HistoryEntry] = Field(default_factory=list)
    assigned_to: str | None = None
    created_by: str | None = None


@dataclass(slots=True)
class UploadedFile:
    id: str
    content: bytes
    name: str
    status: FileStatus = "pending"
    result: AnalysisResult | None = None
    error: str | None = None

    def to_wire(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "result": self.result.to_wire() if self.result else None,
            "error": self.error,
        }
