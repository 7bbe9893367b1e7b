"""Logging setup for an import run: stdout plus one log file per run."""

from __future__ import annotations

import datetime as dt
import logging
import os
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(level: str | None = None, *, log_dir: str | Path | None = None) -> Path | None:
    """Configure the root logger once; returns the per-run log file path, if any."""
    root = logging.getLogger()
    if root.handlers:
        return None

    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    log_file: Path | None = None
    if log_dir is not None:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        stamp = dt.datetime.now(dt.timezone.utc).strftime("%Y-%m-%d_%H-%M-%S")
        log_file = directory / f"importer_{stamp}.log"
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))

    logging.basicConfig(level=level_name, format=LOG_FORMAT, handlers=handlers)
    # httpx logs every request at INFO; keep the run log readable.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return log_file


def format_number(value: int) -> str:
    return f"{value:,}"
