"""Upgrade the teamhub schema to the latest Alembic revision.

Usage:
  python scripts/migrate_upgrade_head.py

DATABASE_URL comes from the environment or a `.env` file (repo root or backend/).
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config


ROOT = Path(__file__).resolve().parents[1]
BACKEND_DIR = ROOT / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from app.core.config import get_settings  # noqa: E402


logger = logging.getLogger("teamhub.migrate")
if not logging.getLogger().handlers:
    logging.basicConfig(level=logging.INFO, format="%(message)s")


def main() -> int:
    url = get_settings().database_url
    if not url:
        logger.error("Missing DATABASE_URL (set env var or create .env).")
        return 2

    cfg = Config(str(BACKEND_DIR / "alembic.ini"))
    cfg.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    cfg.set_main_option("sqlalchemy.url", url)

    logger.info("Upgrading schema to head...")
    command.upgrade(cfg, "head")
    logger.info("Schema is at head.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
