from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from openai import APIConnectionError, APIStatusError, AsyncOpenAI, OpenAIError

from screener.config import Settings
from screener.errors import GatewayError
from screener.types import ChatMessage, ModelResponse

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProviderConfig:
    name: str
    base_url: str
    api_key: str
    model: str
    timeout_sec: int
    default_temperature: float = 0.6

    @classmethod
    def from_settings(cls, settings: Settings) -> ProviderConfig:
        return cls(
            name="deepseek",
            base_url=settings.llm_base_url,
            api_key=settings.llm_api_key,
            model=settings.llm_model,
            timeout_sec=settings.llm_timeout_sec,
            default_temperature=settings.llm_temperature,
        )


class LLMProvider:
    """Chat-completions client with the model fixed by configuration."""

    def __init__(self, config: ProviderConfig):
        self.config = config
        self.client = AsyncOpenAI(
            base_url=config.base_url,
            # The SDK refuses to build a client without a key; calls fail later instead.
            api_key=config.api_key or "unset",
            timeout=float(config.timeout_sec),
        )

    async def complete_chat(
        self,
        messages: list[ChatMessage],
        *,
        temperature: float | None = None,
    ) -> ModelResponse:
        try:
            response = await self.client.chat.completions.create(
                model=self.config.model,
                messages=[message.model_dump() for message in messages],
                response_format={"type": "json_object"},
                temperature=temperature or self.config.default_temperature,
            )
        except APIStatusError as exc:
            logger.warning(
                "LLM request rejected provider=%s status=%s", self.config.name, exc.status_code
            )
            raise GatewayError(f"API请求失败: {_status_text(exc)}") from exc
        except APIConnectionError as exc:
            logger.warning("LLM request failed provider=%s error=%s", self.config.name, exc)
            raise GatewayError(f"API请求失败: {exc}") from exc
        except OpenAIError as exc:
            raise GatewayError(f"API请求失败: {exc}") from exc

        raw = response.model_dump() if hasattr(response, "model_dump") else {}
        if not isinstance(raw, dict):
            raw = {"raw": raw}
        return ModelResponse(content=self._extract_chat_text(response), raw=raw)

    @staticmethod
    def _extract_chat_text(response: Any) -> str:
        choices = getattr(response, "choices", None) or []
        if not choices:
            return ""

        message = getattr(choices[0], "message", None)
        if message is None:
            return ""

        content = getattr(message, "content", "")
        if isinstance(content, str):
            return content
        if content is None:
            return ""
        return str(content)


def _status_text(exc: APIStatusError) -> str:
    response = getattr(exc, "response", None)
    reason = getattr(response, "reason_phrase", "") if response is not None else ""
    return reason or exc.message or str(exc.status_code)
