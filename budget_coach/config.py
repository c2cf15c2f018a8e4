"""Configuration management for the budget coach.

Centralizes paths, storage selection and defaults, with environment
variable overrides. Call ``load_dotenv()`` before :meth:`Settings.from_env`
to pick up a ``.env`` file.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

STORAGE_BACKENDS = ("sql", "memory", "remote")


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    database_url: str
    storage: str = "sql"
    helm_api_url: Optional[str] = None
    helm_api_token: str = ""
    default_user_id: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        data_dir = Path(os.getenv("COACH_DATA_DIR", _PROJECT_ROOT / "data")).resolve()
        database_url = os.getenv(
            "COACH_DATABASE_URL", f"sqlite+aiosqlite:///{data_dir / 'budget_coach.db'}"
        )
        storage = os.getenv("COACH_STORAGE", "sql").strip().lower()
        if storage not in STORAGE_BACKENDS:
            raise RuntimeError(
                f"COACH_STORAGE must be one of {', '.join(STORAGE_BACKENDS)}, got '{storage}'"
            )

        helm_api_url = os.getenv("HELM_API_URL") or None
        if storage == "remote" and not helm_api_url:
            raise RuntimeError("HELM_API_URL is required when COACH_STORAGE=remote")

        return cls(
            data_dir=data_dir,
            database_url=database_url,
            storage=storage,
            helm_api_url=helm_api_url,
            helm_api_token=os.getenv("HELM_API_TOKEN", ""),
            default_user_id=os.getenv("COACH_DEFAULT_USER_ID") or None,
            log_level=os.getenv("COACH_LOG_LEVEL", "INFO").upper(),
        )

    def ensure_data_dir(self) -> None:
        """Create the data directory if the database lives in it."""
        if self.database_url.startswith("sqlite") and str(self.data_dir) in self.database_url:
            self.data_dir.mkdir(parents=True, exist_ok=True)


def configure_logging(level: str = "INFO") -> None:
    """Log to stderr; stdout carries the MCP stdio transport."""
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
