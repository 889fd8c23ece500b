from __future__ import annotations

import logging

from screener.config import get_settings


_LOG_CONFIGURED = False


def configure_logging(level: str | None = None) -> None:
    global _LOG_CONFIGURED
    if _LOG_CONFIGURED:
        return

    level_name = level or get_settings().log_level
    logging.basicConfig(
        level=getattr(logging, level_name.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    # httpx logs every LLM request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _LOG_CONFIGURED = True
