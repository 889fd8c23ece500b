from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import ValidationError

from screener.config import Settings, get_settings
from screener.errors import GatewayError, ShapeError
from screener.llm.providers import LLMProvider, ProviderConfig
from screener.types import HARD_GATE_SCORE_CAP, AnalysisResult, ChatMessage

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class Err:
    error: ShapeError


def decode_analysis(content: str) -> Ok[AnalysisResult] | Err:
    """Decode model output into an AnalysisResult without raising."""
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as exc:
        return Err(ShapeError(f"分析结果不是合法的JSON: {exc.msg}"))

    if not isinstance(payload, dict):
        return Err(ShapeError("分析结果不是JSON对象"))

    try:
        result = AnalysisResult.model_validate(payload)
    except ValidationError as exc:
        fields = sorted({".".join(str(part) for part in err["loc"]) for err in exc.errors()})
        return Err(ShapeError(f"分析结果字段不完整或格式错误: {', '.join(fields)}"))
    return Ok(enforce_score_cap(result))


def enforce_score_cap(result: AnalysisResult) -> AnalysisResult:
    if result.hard_requirements_met or result.match_score <= HARD_GATE_SCORE_CAP:
        return result
    logger.warning(
        "Clamping matchScore %s to %s for unmet hard requirements",
        result.match_score,
        HARD_GATE_SCORE_CAP,
    )
    return result.model_copy(update={"match_score": HARD_GATE_SCORE_CAP})


class AnalysisGateway:
    def __init__(self, settings: Settings | None = None, *, provider: LLMProvider | None = None):
        self.settings = settings or get_settings()
        self.provider = provider or LLMProvider(ProviderConfig.from_settings(self.settings))

    async def analyze(
        self,
        messages: list[ChatMessage],
        *,
        temperature: float | None = None,
    ) -> AnalysisResult:
        response = await self.provider.complete_chat(messages, temperature=temperature)
        if not response.content.strip():
            raise GatewayError("未能生成分析结果")

        decoded = decode_analysis(response.content)
        if isinstance(decoded, Err):
            raise decoded.error
        return decoded.value

    async def forward(
        self,
        messages: list[ChatMessage],
        *,
        temperature: float | None = None,
    ) -> dict[str, Any]:
        response = await self.provider.complete_chat(messages, temperature=temperature)
        return response.raw
