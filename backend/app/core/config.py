"""Runtime configuration (environment variables only).

- `.env` files at the repo root and `backend/.env` are loaded when present.
- Existing environment variables always win over file values.
- Secrets are read lazily; missing ones fail at the point of use.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Optional


DATABASE_URL_ENV: Final[str] = "DATABASE_URL"
JWT_SECRET_ENV: Final[str] = "TH_JWT_SECRET"
CORS_ORIGINS_ENV: Final[str] = "TH_CORS_ORIGINS"
LOG_LEVEL_ENV: Final[str] = "TH_LOG_LEVEL"

DEFAULT_CORS_ORIGINS: Final[str] = "http://localhost:5173,http://127.0.0.1:5173"

# backend/app/core/config.py -> repo root
REPO_ROOT = Path(__file__).resolve().parents[3]


def _parse_env_line(line: str) -> Optional[tuple[str, str]]:
    line = line.strip()
    if not line or line.startswith("#") or "=" not in line:
        return None
    key, value = (part.strip() for part in line.split("=", 1))
    if not key:
        return None
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        value = value[1:-1]
    return key, value


def load_env_if_present(*, override: bool = False) -> None:
    """Load `.env` then `backend/.env` into os.environ if they exist."""
    for path in (REPO_ROOT / ".env", REPO_ROOT / "backend" / ".env"):
        if not path.is_file():
            continue
        try:
            content = path.read_text(encoding="utf-8")
        except OSError:
            continue
        for raw in content.splitlines():
            parsed = _parse_env_line(raw)
            if parsed is None:
                continue
            key, value = parsed
            if override or key not in os.environ:
                os.environ[key] = value


@dataclass(frozen=True, slots=True)
class Settings:
    database_url: Optional[str]
    jwt_secret: Optional[str]
    cors_origins: tuple[str, ...]
    log_level: str


def get_settings() -> Settings:
    load_env_if_present()
    origins = os.environ.get(CORS_ORIGINS_ENV, DEFAULT_CORS_ORIGINS)
    return Settings(
        database_url=os.environ.get(DATABASE_URL_ENV) or None,
        jwt_secret=os.environ.get(JWT_SECRET_ENV) or None,
        cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
        log_level=os.environ.get(LOG_LEVEL_ENV, "INFO").upper(),
    )
