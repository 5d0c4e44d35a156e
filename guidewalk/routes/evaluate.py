"""Stateless evaluation: guideline document and inputs in, DecisionResult out."""

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from guidewalk.services.decision_service import evaluate, summarize_inputs
from shared.schemas import DecisionResult

router = APIRouter()


class EvaluateRequest(BaseModel):
    guideline: dict[str, Any] = Field(..., description="Legacy guideline document")
    inputs: dict[str, Any] = Field(default_factory=dict, description="Input id -> value")


@router.post("/", response_model=DecisionResult)
def evaluate_document(body: EvaluateRequest):
    """Walk the supplied guideline with the supplied inputs."""
    return evaluate(body.guideline, body.inputs)


@router.post("/summary")
def summarize_document(body: EvaluateRequest):
    """Summarize the supplied inputs against the guideline's declared inputs."""
    return {"summary": summarize_inputs(body.guideline, body.inputs)}
