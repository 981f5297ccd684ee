# src/whisper_echo/scripts/maintenance.py
"""Periodic housekeeping: delete WhisperWall posts past their expiry.

Run from cron or a scheduler, e.g. ``python -m whisper_echo.scripts.maintenance``.
Expired whispers are already hidden from every read path, so running this
late only costs storage.
"""

from __future__ import annotations

import argparse
import logging

from whisper_echo.core.logging import configure_logging
from whisper_echo.db.session import SessionLocal
from whisper_echo.services.whispers import purge_expired_whispers

logger = logging.getLogger(__name__)


def run_purge() -> int:
    db = SessionLocal()
    try:
        return purge_expired_whispers(db)
    finally:
        db.close()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Purge expired WhisperWall posts.")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL for this run.")
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    removed = run_purge()
    logger.info("Maintenance finished; %d whisper posts removed", removed)


if __name__ == "__main__":
    main()
