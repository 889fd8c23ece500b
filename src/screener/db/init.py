from __future__ import annotations

from pathlib import Path

from screener.config import Settings, get_settings
from screener.db.facade import PersistenceFacade


def ensure_data_directories(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    paths: list[Path] = [settings.data_dir, settings.local_cache_path.parent]
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def init_database(settings: Settings | None = None) -> dict[str, bool]:
    settings = settings or get_settings()
    ensure_data_directories(settings)

    facade = PersistenceFacade.from_settings(settings)
    facade.create_schema()
    return {"database_configured": facade.configured}
