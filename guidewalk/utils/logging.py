"""
Structured logging for Guidewalk.

- Level from GUIDEWALK_LOG_LEVEL (DEBUG, INFO, WARNING, ERROR)
- File handler in GUIDEWALK_LOG_DIR (default: project root / logs)
- Console handler for development
- One-line JSON event records for evaluations and validation runs

Patient input values are never written to the log; events carry node ids,
guideline ids, action levels and error codes only.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

LOG_DIR = Path(os.getenv("GUIDEWALK_LOG_DIR", str(Path(__file__).resolve().parent.parent.parent / "logs")))
LOG_LEVEL = os.getenv("GUIDEWALK_LOG_LEVEL", "INFO").upper()
LOG_FILE_NAME = "guidewalk.log"

FILE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
CONSOLE_FORMAT = "%(levelname)s | %(name)s | %(message)s"


def configure_logging(
    level: str = LOG_LEVEL,
    log_dir: Optional[Path] = None,
    log_to_console: bool = True,
) -> None:
    """Install file (and console) handlers on the root logger. Safe to call again on reload."""
    target_dir = Path(log_dir or LOG_DIR)
    target_dir.mkdir(parents=True, exist_ok=True)
    level_value = getattr(logging, level, logging.INFO)

    handlers: list[logging.Handler] = [logging.FileHandler(target_dir / LOG_FILE_NAME, encoding="utf-8")]
    handlers[0].setFormatter(logging.Formatter(FILE_FORMAT))
    if log_to_console:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        handlers.append(console)

    root = logging.getLogger()
    root.setLevel(level_value)
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    for h in handlers:
        h.setLevel(level_value)
        root.addHandler(h)

    logging.getLogger("guidewalk").setLevel(level_value)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _log_event(logger: logging.Logger, level: int, label: str, payload: dict[str, Any]) -> None:
    payload["ts"] = _utc_now()
    logger.log(level, "%s: %s", label, json.dumps(payload, default=str))


def log_evaluation(
    logger: logging.Logger,
    guideline_id: str,
    path: list[str],
    action_level: Optional[str] = None,
    duration_sec: Optional[float] = None,
    success: bool = True,
    error: Optional[str] = None,
    extra: Optional[dict[str, Any]] = None,
) -> None:
    """Log one decision-engine evaluation (path and outcome, never input values)."""
    payload = {
        "event": "evaluation",
        "guideline_id": guideline_id,
        "path": path,
        "action_level": action_level,
        "duration_sec": duration_sec,
        "success": success,
        "error": error,
        **(extra or {}),
    }
    _log_event(logger, logging.INFO if success else logging.WARNING, "Evaluation", payload)


def log_validation_result(
    logger: logging.Logger,
    guideline_id: str,
    error_count: int,
    warning_count: int = 0,
    duration_sec: Optional[float] = None,
) -> None:
    """Log a static validation run."""
    payload = {
        "event": "validation",
        "guideline_id": guideline_id,
        "errors": error_count,
        "warnings": warning_count,
        "duration_sec": duration_sec,
    }
    _log_event(logger, logging.WARNING if error_count else logging.INFO, "Validation", payload)
