from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import fitz
import pytest

from screener.config import Settings
from screener.core.controller import ScreenerController
from screener.db.facade import PersistenceFacade
from screener.errors import ExtractionError, GatewayError
from screener.store.local_cache import LocalCache
from screener.store.tiered import TieredStore
from screener.types import AnalysisResult, ChatMessage

ANALYSIS_PAYLOAD: dict[str, Any] = {
    "candidateInfo": {
        "name": "张三",
        "university": "浙江大学",
        "graduationYear": "2019",
        "major": "计算机科学与技术",
        "experienceYears": 5,
    },
    "matchScore": 82,
    "confidence": 88,
    "summary": "后端经验扎实，核心技能与岗位高度匹配。",
    "analysis": {
        "strengths": ["Python 服务端开发", "高并发系统经验"],
        "weaknesses": ["缺少团队管理经验"],
        "risks": "近两年跳槽一次",
        "stability": "平均任职 2.5 年",
        "careerProgression": "工程师到高级工程师",
        "skillRecency": "核心技能近 3 年持续使用",
    },
    "interviewQuestions": ["介绍一次线上故障的排查过程", "如何设计幂等接口"],
    "recommendation": "推荐",
    "hardRequirementsMet": True,
    "hardRequirementsNote": "",
}


def analysis_payload(**overrides: Any) -> dict[str, Any]:
    payload = copy.deepcopy(ANALYSIS_PAYLOAD)
    payload.update(overrides)
    return payload


def make_pdf(*pages: str) -> bytes:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text, fontsize=10)
    data = doc.tobytes()
    doc.close()
    return data


class FakeGateway:
    """Stands in for AnalysisGateway; resumes containing FAIL raise GatewayError."""

    def __init__(self, payload: dict[str, Any] | None = None):
        self.payload = payload or ANALYSIS_PAYLOAD
        self.calls: list[list[ChatMessage]] = []

    async def analyze(self, messages: list[ChatMessage], *, temperature: float | None = None):
        self.calls.append(messages)
        if "FAIL" in messages[-1].content:
            raise GatewayError("API请求失败: Internal Server Error")
        return AnalysisResult.model_validate(self.payload)

    async def forward(self, messages: list[ChatMessage], *, temperature: float | None = None):
        self.calls.append(messages)
        return {"choices": [{"message": {"role": "assistant", "content": "{}"}}]}


async def fake_extract(data: bytes, *, min_chars: int = 50) -> str:
    text = data.decode("utf-8")
    if len(text) < min_chars:
        raise ExtractionError("PDF内容过少或无法提取，请检查文件")
    return text


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        app_env="test",
        database_url=f"sqlite:///{tmp_path / 'screener.db'}",
        data_dir=tmp_path,
        local_cache_path=tmp_path / "local_cache.json",
        llm_api_key="test-key",
    )


@pytest.fixture
def offline_settings(tmp_path: Path) -> Settings:
    return Settings(
        app_env="test",
        database_url="",
        data_dir=tmp_path,
        local_cache_path=tmp_path / "local_cache.json",
        llm_api_key="test-key",
    )


@pytest.fixture
def facade(settings: Settings) -> PersistenceFacade:
    facade = PersistenceFacade.from_settings(settings)
    facade.create_schema()
    return facade


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def controller(settings: Settings, facade: PersistenceFacade, fake_gateway: FakeGateway) -> ScreenerController:
    store = TieredStore(facade, LocalCache(settings.local_cache_path))
    controller = ScreenerController(settings, store=store, gateway=fake_gateway, extractor=fake_extract)
    controller.bootstrap()
    return controller
