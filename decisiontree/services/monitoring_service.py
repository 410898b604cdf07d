"""
Monitoring for the decision tree CMS.

- Health check: DB connectivity
- Metrics: record counts and tree integrity (orphan steps)
- Used by /api/health and /api/metrics endpoints
"""

import logging
from typing import Any

from sqlalchemy import func

from decisiontree.database import SessionLocal, check_connection
from decisiontree.models_db import AnswerModel, ElementModel, StepModel
from shared.schemas import StepType

logger = logging.getLogger(__name__)


def get_health() -> dict[str, Any]:
    """Return health status for /api/health."""
    db_ok, db_msg = check_connection()
    return {
        "status": "healthy" if db_ok else "unhealthy",
        "checks": {
            "database": {"status": "up" if db_ok else "down", "message": db_msg},
        },
    }


def get_metrics(db=None) -> dict[str, Any]:
    """Aggregate counts for /api/metrics."""
    own_session = db is None
    db = db or SessionLocal()
    try:
        steps = db.query(func.count(StepModel.id)).scalar() or 0
        results = db.query(func.count(StepModel.id)).filter(StepModel.type == StepType.RESULT.value).scalar() or 0
        answers = db.query(func.count(AnswerModel.id)).scalar() or 0
        elements = db.query(func.count(ElementModel.id)).scalar() or 0
        orphans = len(StepModel.get_orphans(db))
    except Exception as e:
        logger.exception("Metrics query failed")
        return {"error": str(e)}
    finally:
        if own_session:
            db.close()
    if orphans:
        logger.info("Metrics: %d orphan step(s)", orphans)
    return {
        "elements": elements,
        "steps": steps,
        "question_steps": steps - results,
        "result_steps": results,
        "answers": answers,
        "orphan_steps": orphans,
    }
