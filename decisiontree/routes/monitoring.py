"""Health and metrics endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from decisiontree.database import get_db
from decisiontree.services.monitoring_service import get_health, get_metrics

router = APIRouter(tags=["monitoring"])


@router.get("/health", summary="Health check")
def health():
    """
    Health check for load balancers and orchestration.
    Returns database status. Does not require authentication.
    """
    return get_health()


@router.get("/metrics", summary="Record counts")
def metrics(db: Session = Depends(get_db)):
    """Counts of elements, steps (by type), answers and orphan steps."""
    return get_metrics(db)
