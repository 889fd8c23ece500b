from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

USERS_KEY = "resume-screener-users"
SESSION_USERS_KEY = "resume-screener-session-users"
HISTORY_KEY = "resume-screener-history"
POSITIONS_KEY = "resume-screener-positions"


class LocalCache:
    """Namespaced key/value cache persisted as one JSON document.

    With ``path=None`` the cache lives only in memory.
    """

    def __init__(self, path: Path | None = None):
        self.path = path
        self._data: dict[str, Any] = self._load()

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._flush()

    def _load(self) -> dict[str, Any]:
        if self.path is None or not self.path.is_file():
            return {}
        try:
            value = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.warning("Local cache at %s is unreadable; starting empty", self.path)
            return {}
        return value if isinstance(value, dict) else {}

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(self._data, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp_path.replace(self.path)
