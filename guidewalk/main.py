"""
Guidewalk FastAPI application entrypoint.

Run with: uvicorn guidewalk.main:app --reload
"""

import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from guidewalk.database import init_db
from guidewalk.routes import api_router
from guidewalk.utils.exceptions import (
    DecisionEngineError,
    GuidelineFormatError,
    GuidewalkError,
    InvalidPathError,
    UnsupportedGuidelineFormatError,
)
from guidewalk.utils.logging import configure_logging

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("GUIDEWALK_CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if o.strip()
]


def ensure_dirs():
    """Create models and logs directories if missing."""
    root = Path(__file__).resolve().parent.parent
    for name in ("models", "logs"):
        (root / name).mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create dirs, configure logging and create DB tables on startup."""
    ensure_dirs()
    configure_logging()
    init_db()
    yield


app = FastAPI(
    title="Guidewalk API",
    description="""Clinical guideline decision engine.

Walks a legacy linked-node guideline from its `root` node to one recommended
action, returning the action, the path of visited node ids and any triggered
notes. Graph/rules guidelines can be stored, validated and path-traced.
""",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _status_for(exc: GuidewalkError) -> int:
    if isinstance(exc, (GuidelineFormatError, UnsupportedGuidelineFormatError)):
        return 400
    if isinstance(exc, (DecisionEngineError, InvalidPathError)):
        return 422
    return 500


@app.exception_handler(GuidewalkError)
async def guidewalk_error_handler(request: Request, exc: GuidewalkError):
    """Engine and document errors become JSON error bodies."""
    return JSONResponse(status_code=_status_for(exc), content={"detail": exc.to_dict()})


app.include_router(api_router)


@app.get("/")
def root():
    return {"service": "Guidewalk", "docs": "/docs", "api": "/api"}
