"""
Structured logging for the decision tree CMS.

- Configurable level (DEBUG, INFO, WARN, ERROR)
- Writes to /logs/ directory
- Console handler for development
- Helpers for step lifecycle events and permission denials
"""

import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

# Default: project root / logs
LOG_DIR = Path(os.getenv("DECISIONTREE_LOG_DIR", str(Path(__file__).resolve().parent.parent.parent / "logs")))
LOG_LEVEL = os.getenv("DECISIONTREE_LOG_LEVEL", "INFO").upper()


def _ensure_log_dir(log_dir: Path) -> Path:
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def configure_logging(
    level: str = LOG_LEVEL,
    log_dir: Optional[Path] = None,
    log_to_console: bool = True,
) -> None:
    """Configure root and decisiontree loggers. Call once at app startup."""
    log_dir = _ensure_log_dir(log_dir or LOG_DIR)
    level_value = getattr(logging, level, logging.INFO)

    log_file = log_dir / "decisiontree.log"
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(level_value)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    )

    root = logging.getLogger()
    root.setLevel(level_value)
    # Avoid duplicate handlers when reloading
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(file_handler)
    if log_to_console:
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(level_value)
        console.setFormatter(logging.Formatter("%(levelname)s | %(name)s | %(message)s"))
        root.addHandler(console)

    logging.getLogger("decisiontree").setLevel(level_value)


def get_logger(name: str) -> logging.Logger:
    """Return a logger for the given module (e.g. decisiontree.services.step_service)."""
    return logging.getLogger(name)


def log_step_event(
    logger: logging.Logger,
    event: str,
    step_id: Optional[int],
    extra: Optional[dict[str, Any]] = None,
) -> None:
    """Log a step lifecycle event (created, updated, deleted, answer_cascade...)."""
    payload = {
        "event": event,
        "step_id": step_id,
        "ts": datetime.utcnow().isoformat() + "Z",
    }
    if extra:
        payload.update(extra)
    logger.info("Step: %s", json.dumps(payload, default=str))


def log_permission_denied(
    logger: logging.Logger,
    action: str,
    record: str,
    record_id: Optional[int],
    member_email: Optional[str],
) -> None:
    """Log a denied create/view/edit/delete decision."""
    payload = {
        "event": "permission_denied",
        "action": action,
        "record": record,
        "record_id": record_id,
        "member": member_email,
    }
    logger.warning("Permission: %s", json.dumps(payload, default=str))
