from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    val = raw.strip().lower()
    if val in {"1", "true", "yes", "y", "on"}:
        return True
    if val in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    """Static settings for the local editor service.

    Everything is local: one sqlite file under ``data_dir`` plus a log file.
    """

    root_dir: Path = Path(__file__).resolve().parents[2]
    data_dir: Path = Path(os.environ.get("FOLIO_DATA_DIR", str(root_dir / ".folio-data")))
    log_path: Path = data_dir / "folio.log"
    log_level: str = os.environ.get("FOLIO_LOG_LEVEL", "INFO")
    log_max_bytes: int = _env_int("FOLIO_LOG_MAX_BYTES", 1_000_000)
    log_backup_count: int = _env_int("FOLIO_LOG_BACKUP_COUNT", 3)
    log_to_file: bool = _env_bool("FOLIO_LOG_TO_FILE", True)

    # Trailing-edge delay before a page snapshot is written.
    save_delay_ms: int = _env_int("FOLIO_SAVE_DELAY_MS", 500)

    # Backlink preview length and link autocomplete menu size.
    preview_chars: int = _env_int("FOLIO_PREVIEW_CHARS", 200)
    link_menu_limit: int = _env_int("FOLIO_LINK_MENU_LIMIT", 10)

    @property
    def save_delay_seconds(self) -> float:
        return self.save_delay_ms / 1000.0


settings = Settings()
