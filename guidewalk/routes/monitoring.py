"""Health and metrics endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from guidewalk.database import get_db
from guidewalk.services.monitoring_service import get_health, get_metrics

router = APIRouter(tags=["monitoring"])


@router.get("/health", summary="Health check")
def health(db: Session = Depends(get_db)):
    """Health check for load balancers and orchestration. Returns database status."""
    return get_health(db)


@router.get("/metrics", summary="Service metrics")
def metrics(db: Session = Depends(get_db)):
    """Aggregate metrics: stored guidelines by format, test cases, latest test pass rate."""
    return get_metrics(db)
