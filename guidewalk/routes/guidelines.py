"""
Guideline routes: store, list, validate, evaluate, and manage sample test cases.
"""

import uuid
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from guidewalk.database import get_db
from guidewalk.models.guideline import TestCase
from guidewalk.models_db import TestCaseModel, TestResultModel
from guidewalk.services.decision_service import evaluate, summarize_inputs
from guidewalk.services.graph_service import trace_path
from guidewalk.services.guideline_service import (
    AnyDocument,
    delete_guideline,
    dump_guideline,
    get_guideline,
    list_guidelines,
    save_guideline,
)
from guidewalk.services.test_service import run_all_tests, run_test_case
from guidewalk.services.validation_service import validate_guideline
from shared.schemas import ActionLevel, DecisionResult, GuidelineFormat

router = APIRouter()


class InputsBody(BaseModel):
    inputs: dict[str, Any] = Field(default_factory=dict, description="Input id -> value")


class TraceBody(BaseModel):
    path: list[str] = Field(..., description="Node ids reported by the reasoning layer")


class TestCaseCreate(BaseModel):
    __test__ = False

    title: Optional[str] = None
    input_values: dict[str, Any] = Field(default_factory=dict)
    expected_path: list[str] = Field(default_factory=list)
    expected_level: Optional[ActionLevel] = None
    expected_action: Optional[str] = None


def _load_guideline(db: Session, guideline_id: str) -> AnyDocument:
    doc = get_guideline(db, guideline_id)
    if doc is None:
        raise HTTPException(status_code=404, detail=f"Guideline '{guideline_id}' not found")
    return doc


def _test_case_from_row(row: TestCaseModel) -> TestCase:
    return TestCase(
        id=row.id,
        guideline_id=row.guideline_id,
        title=row.title,
        input_values=row.input_values or {},
        expected_path=row.expected_path or [],
        expected_level=row.expected_level,
        expected_action=row.expected_action,
    )


# -----------------------------------------------------------------------------
# Documents
# -----------------------------------------------------------------------------


@router.get("/")
def list_all(
    db: Session = Depends(get_db),
    format: Optional[GuidelineFormat] = Query(None, description="Filter by format (legacy, nice)"),
):
    """List stored guidelines, optionally filtered by format."""
    return list_guidelines(db, format=format)


@router.post("/", status_code=201)
def create_guideline(document: dict[str, Any], db: Session = Depends(get_db)):
    """Store a guideline document (either format). Replaces an existing one with the same id."""
    doc = save_guideline(db, document)
    return {"id": doc.guideline_id, "name": doc.name, "version": doc.version, "format": doc.format}


@router.post("/validate")
def validate_document(document: dict[str, Any]):
    """Run static validation on a guideline document without storing it."""
    issues = validate_guideline(document)
    errors = [i.model_dump() for i in issues if i.severity == "error"]
    warnings = [i.model_dump() for i in issues if i.severity == "warning"]
    return {"valid": not errors, "errors": errors, "warnings": warnings}


@router.get("/{guideline_id}")
def get_one(guideline_id: str, db: Session = Depends(get_db)):
    """Return a stored guideline document."""
    return dump_guideline(_load_guideline(db, guideline_id))


@router.delete("/{guideline_id}", status_code=204)
def delete_one(guideline_id: str, db: Session = Depends(get_db)):
    """Delete a stored guideline and its test cases."""
    if not delete_guideline(db, guideline_id):
        raise HTTPException(status_code=404, detail=f"Guideline '{guideline_id}' not found")
    db.query(TestCaseModel).filter(TestCaseModel.guideline_id == guideline_id).delete()
    db.commit()
    return None


# -----------------------------------------------------------------------------
# Evaluation
# -----------------------------------------------------------------------------


@router.post("/{guideline_id}/evaluate", response_model=DecisionResult)
def evaluate_stored(guideline_id: str, body: InputsBody, db: Session = Depends(get_db)):
    """Walk a stored legacy guideline with the given inputs."""
    return evaluate(_load_guideline(db, guideline_id), body.inputs)


@router.post("/{guideline_id}/summary")
def summarize_stored(guideline_id: str, body: InputsBody, db: Session = Depends(get_db)):
    """Human-readable summary of the supplied inputs."""
    return {"summary": summarize_inputs(_load_guideline(db, guideline_id), body.inputs)}


@router.post("/{guideline_id}/trace")
def trace_stored(guideline_id: str, body: TraceBody, db: Session = Depends(get_db)):
    """Resolve a node path reported for a graph/rules guideline into labeled steps."""
    steps = trace_path(_load_guideline(db, guideline_id), body.path)
    return {"guideline_id": guideline_id, "steps": [s.model_dump(mode="json") for s in steps]}


# -----------------------------------------------------------------------------
# Test cases and test execution
# -----------------------------------------------------------------------------


@router.get("/{guideline_id}/test-cases")
def list_test_cases(guideline_id: str, db: Session = Depends(get_db)):
    """List all test cases for a guideline."""
    rows = (
        db.query(TestCaseModel)
        .filter(TestCaseModel.guideline_id == guideline_id)
        .order_by(TestCaseModel.created_at.asc())
        .all()
    )
    return [_test_case_from_row(r).model_dump(mode="json") for r in rows]


@router.post("/{guideline_id}/test-cases", status_code=201)
def create_test_case(guideline_id: str, body: TestCaseCreate, db: Session = Depends(get_db)):
    """Create a new test case for the guideline."""
    _load_guideline(db, guideline_id)
    tc = TestCase(id=f"tc-{uuid.uuid4().hex[:12]}", guideline_id=guideline_id, **body.model_dump())
    db.add(
        TestCaseModel(
            id=tc.id,
            guideline_id=guideline_id,
            title=tc.title,
            input_values=tc.input_values,
            expected_path=tc.expected_path,
            expected_level=tc.expected_level.value if tc.expected_level else None,
            expected_action=tc.expected_action,
        )
    )
    db.commit()
    return tc.model_dump(mode="json")


@router.delete("/{guideline_id}/test-cases/{case_id}", status_code=204)
def delete_test_case(guideline_id: str, case_id: str, db: Session = Depends(get_db)):
    """Delete a test case."""
    row = (
        db.query(TestCaseModel)
        .filter(TestCaseModel.guideline_id == guideline_id, TestCaseModel.id == case_id)
        .first()
    )
    if not row:
        raise HTTPException(status_code=404, detail="Test case not found")
    db.delete(row)
    db.commit()
    return None


@router.post("/{guideline_id}/test-cases/{case_id}/run")
def run_single_test(guideline_id: str, case_id: str, db: Session = Depends(get_db)):
    """Run one test case and return its result."""
    doc = _load_guideline(db, guideline_id)
    row = (
        db.query(TestCaseModel)
        .filter(TestCaseModel.guideline_id == guideline_id, TestCaseModel.id == case_id)
        .first()
    )
    if not row:
        raise HTTPException(status_code=404, detail="Test case not found")
    return run_test_case(doc, _test_case_from_row(row)).to_dict()


@router.post("/{guideline_id}/test")
def run_tests(guideline_id: str, db: Session = Depends(get_db)):
    """Run all test cases for the guideline; store and return results."""
    doc = _load_guideline(db, guideline_id)
    if doc.format != GuidelineFormat.LEGACY.value:
        raise HTTPException(status_code=400, detail="Only legacy guidelines can be tested")
    rows = (
        db.query(TestCaseModel)
        .filter(TestCaseModel.guideline_id == guideline_id)
        .order_by(TestCaseModel.created_at.asc())
        .all()
    )
    previous = None
    last_run = (
        db.query(TestResultModel)
        .filter(TestResultModel.guideline_id == guideline_id)
        .order_by(TestResultModel.run_at.desc(), TestResultModel.id.desc())
        .first()
    )
    if last_run and last_run.results and isinstance(last_run.results.get("results"), list):
        previous = last_run.results["results"]
    suite = run_all_tests(doc, [_test_case_from_row(r) for r in rows], previous_results=previous)
    db.add(TestResultModel(guideline_id=guideline_id, results=suite.to_dict()))
    db.commit()
    return suite.to_dict()
