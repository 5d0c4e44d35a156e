"""
Monitoring for Guidewalk.

- Health check: DB connectivity
- Metrics: stored guideline counts by format, test cases, latest test pass rate
"""

import logging
from typing import Any

from sqlalchemy import func, text
from sqlalchemy.orm import Session

from guidewalk.models_db import GuidelineModel, TestCaseModel, TestResultModel

logger = logging.getLogger(__name__)


def check_db(db: Session) -> tuple[bool, str]:
    """Check database connectivity. Returns (ok, message)."""
    try:
        db.execute(text("SELECT 1"))
        return True, "ok"
    except Exception as e:
        return False, str(e)


def get_health(db: Session) -> dict[str, Any]:
    """Return health status for /api/health."""
    db_ok, db_msg = check_db(db)
    return {
        "status": "healthy" if db_ok else "unhealthy",
        "checks": {
            "database": {"status": "up" if db_ok else "down", "message": db_msg},
        },
    }


def get_metrics(db: Session) -> dict[str, Any]:
    """Aggregate metrics from DB for /api/metrics."""
    by_format = dict(
        db.query(GuidelineModel.format, func.count(GuidelineModel.id)).group_by(GuidelineModel.format).all()
    )
    test_cases_total = db.query(func.count(TestCaseModel.id)).scalar() or 0

    # Latest run per guideline
    result_rows = db.query(TestResultModel).order_by(TestResultModel.run_at.desc()).limit(100).all()
    latest: dict[str, dict] = {}
    for row in result_rows:
        if row.guideline_id not in latest and isinstance(row.results, dict):
            latest[row.guideline_id] = row.results
    total_tests = sum(r.get("total") or 0 for r in latest.values())
    total_passed = sum(r.get("passed") or 0 for r in latest.values())
    pass_rate = (total_passed / total_tests * 100) if total_tests else None

    return {
        "guidelines_total": sum(by_format.values()),
        "guidelines_legacy": by_format.get("legacy", 0),
        "guidelines_nice": by_format.get("nice", 0),
        "test_cases_total": test_cases_total,
        "test_runs_sampled": len(latest),
        "test_pass_rate_percent": round(pass_rate, 1) if pass_rate is not None else None,
    }
