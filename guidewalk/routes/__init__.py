"""API routes for Guidewalk."""

from fastapi import APIRouter

from guidewalk.routes import evaluate, guidelines, monitoring, test_results

api_router = APIRouter(prefix="/api", tags=["api"])

api_router.include_router(monitoring.router)
api_router.include_router(evaluate.router, prefix="/evaluate", tags=["evaluate"])
api_router.include_router(guidelines.router, prefix="/guidelines", tags=["guidelines"])
api_router.include_router(test_results.router, prefix="/test-results", tags=["test-results"])
