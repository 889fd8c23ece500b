import asyncio
import json
from types import SimpleNamespace

import httpx
import pytest
from openai import APIConnectionError

from conftest import analysis_payload
from screener.errors import GatewayError, ShapeError
from screener.llm.gateway import AnalysisGateway, Err, Ok, decode_analysis, enforce_score_cap
from screener.llm.providers import LLMProvider, ProviderConfig
from screener.types import ChatMessage, ModelResponse

MESSAGES = [ChatMessage(role="system", content="s"), ChatMessage(role="user", content="u")]


class StubProvider:
    def __init__(self, content: str):
        self.content = content
        self.temperatures: list[float | None] = []

    async def complete_chat(self, messages, *, temperature=None):
        self.temperatures.append(temperature)
        return ModelResponse(content=self.content, raw={"choices": [{"message": {"content": self.content}}]})


def _gateway(settings, content: str) -> tuple[AnalysisGateway, StubProvider]:
    provider = StubProvider(content)
    return AnalysisGateway(settings, provider=provider), provider


def test_decode_valid_payload() -> None:
    decoded = decode_analysis(json.dumps(analysis_payload()))

    assert isinstance(decoded, Ok)
    assert decoded.value.match_score == 82
    assert decoded.value.candidate_info.name == "张三"
    assert decoded.value.analysis.career_progression == "工程师到高级工程师"


def test_decode_coerces_numeric_graduation_year() -> None:
    payload = analysis_payload()
    payload["candidateInfo"]["graduationYear"] = 2019

    decoded = decode_analysis(json.dumps(payload))

    assert isinstance(decoded, Ok)
    assert decoded.value.candidate_info.graduation_year == "2019"


def test_decode_tolerates_minor_drift() -> None:
    decoded = decode_analysis(json.dumps(analysis_payload(recommendation=" 推荐 ", matchScore=78.5, confidence=90.2)))

    assert isinstance(decoded, Ok)
    assert decoded.value.recommendation == "推荐"
    assert decoded.value.match_score == 78
    assert decoded.value.confidence == 90


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        "[1, 2, 3]",
        json.dumps({"matchScore": 80}),
        json.dumps(analysis_payload(recommendation="可以考虑")),
        json.dumps(analysis_payload(matchScore=140)),
    ],
)
def test_decode_rejects_malformed_output(content: str) -> None:
    decoded = decode_analysis(content)

    assert isinstance(decoded, Err)
    assert isinstance(decoded.error, ShapeError)


def test_unmet_hard_requirements_cap_score() -> None:
    decoded = decode_analysis(
        json.dumps(analysis_payload(matchScore=91, hardRequirementsMet=False, hardRequirementsNote="非985"))
    )

    assert isinstance(decoded, Ok)
    assert decoded.value.match_score == 59


def test_score_cap_leaves_low_scores_alone() -> None:
    result = decode_analysis(json.dumps(analysis_payload(matchScore=40, hardRequirementsMet=False))).value

    assert enforce_score_cap(result) is result


def test_analyze_returns_result(settings) -> None:
    gateway, provider = _gateway(settings, json.dumps(analysis_payload()))

    result = asyncio.run(gateway.analyze(MESSAGES, temperature=0.6))

    assert result.recommendation == "推荐"
    assert provider.temperatures == [0.6]


def test_analyze_empty_content_raises(settings) -> None:
    gateway, _ = _gateway(settings, "   ")

    with pytest.raises(GatewayError, match="未能生成分析结果"):
        asyncio.run(gateway.analyze(MESSAGES))


def test_analyze_shape_error_propagates(settings) -> None:
    gateway, _ = _gateway(settings, "{}")

    with pytest.raises(ShapeError):
        asyncio.run(gateway.analyze(MESSAGES))


def test_forward_returns_raw_envelope(settings) -> None:
    gateway, _ = _gateway(settings, "{}")

    raw = asyncio.run(gateway.forward(MESSAGES))

    assert raw["choices"][0]["message"]["content"] == "{}"


def test_provider_maps_sdk_errors(settings) -> None:
    provider = LLMProvider(ProviderConfig.from_settings(settings))

    async def _fail(**kwargs):
        raise APIConnectionError(request=httpx.Request("POST", "https://api.deepseek.com/chat/completions"))

    provider.client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=_fail)))

    with pytest.raises(GatewayError, match="API请求失败"):
        asyncio.run(provider.complete_chat(MESSAGES))


def test_provider_sends_json_mode_and_default_temperature(settings) -> None:
    provider = LLMProvider(ProviderConfig.from_settings(settings))
    seen: dict = {}

    async def _create(**kwargs):
        seen.update(kwargs)
        message = SimpleNamespace(content='{"ok": true}')
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    provider.client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=_create)))

    response = asyncio.run(provider.complete_chat(MESSAGES))

    assert response.content == '{"ok": true}'
    assert seen["response_format"] == {"type": "json_object"}
    assert seen["temperature"] == 0.6
    assert seen["model"] == settings.llm_model
    assert seen["messages"][1] == {"role": "user", "content": "u"}
