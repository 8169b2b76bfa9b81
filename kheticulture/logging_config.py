"""Logging setup for the Kheticulture marketplace core.

Two kinds of output, both under ``<data_dir>/logs``:
- ``local-YYYY-MM-DD.log``: the ``kheticulture`` logger hierarchy
- ``job-events-YYYY-MM-DD.log``: one line per marketplace event
  (apply, decision, edit, recompute) for after-the-fact auditing
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from kheticulture.utils import get_kheticulture_home

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_VALID_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _log_dir() -> Path:
    log_dir = get_kheticulture_home() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def setup_kheticulture_logging(level: str = "INFO") -> logging.Logger:
    """Configure the ``kheticulture`` logger.

    Args:
        level: Level name, case-insensitive. Unknown names fall back to INFO.
            DEBUG additionally echoes to the console.

    Returns:
        The configured ``kheticulture`` logger. Calling this again does not
        add duplicate handlers.
    """
    level_name = (level or "INFO").upper()
    if level_name not in _VALID_LEVELS:
        level_name = "INFO"
    log_level = getattr(logging, level_name)

    logger = logging.getLogger("kheticulture")
    logger.setLevel(log_level)

    if not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        date_str = datetime.now().strftime("%Y-%m-%d")
        file_handler = logging.FileHandler(_log_dir() / f"local-{date_str}.log")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)

    has_console = any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        for h in logger.handlers
    )
    if log_level == logging.DEBUG and not has_console:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(console)

    return logger


def log_job_event(event_type: str, details: str, actor_id: str = "system") -> None:
    """Append a marketplace event line to today's event log.

    Line format: ``<time> | <event_type> | actor=<actor_id> | <details>``
    """
    date_str = datetime.now().strftime("%Y-%m-%d")
    path = _log_dir() / f"job-events-{date_str}.log"
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    with open(path, "a", encoding="utf-8") as f:
        f.write(f"{timestamp} | {event_type} | actor={actor_id} | {details}\n")


def _short(record_id: Optional[str]) -> str:
    if not record_id:
        return "-"
    return record_id[:8] + "..." if len(record_id) > 8 else record_id


def log_apply(worker_id: str, job_id: str, application_id: str) -> None:
    log_job_event("apply", f"job={_short(job_id)}, application={_short(application_id)}", worker_id)


def log_decision(owner_id: str, application_id: str, decision: str) -> None:
    log_job_event("decision", f"application={_short(application_id)}, decision={decision}", owner_id)


def log_edit(owner_id: str, job_id: str, field_name: str, old, new) -> None:
    log_job_event("edit", f"job={_short(job_id)}, field={field_name}, {old} -> {new}", owner_id)


def log_recompute(total: int, changed: int) -> None:
    log_job_event("recompute", f"jobs={total}, changed={changed}")
