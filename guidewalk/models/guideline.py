"""
Guidewalk service-side models: authored test cases and JSON schema export.

Document shapes (legacy and graph/rules guidelines, DecisionResult) live in
shared.schemas; this module adds what only the service needs.
"""

import json
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from shared.schemas import ActionLevel, AnyGuideline, DecisionResult


# -----------------------------------------------------------------------------
# TestCase (validation)
# -----------------------------------------------------------------------------


class TestCase(BaseModel):
    """A sample case: inputs plus the expected path and/or action."""

    __test__ = False

    id: str = Field(..., description="Unique test case ID")
    guideline_id: str = Field(..., description="ID of the guideline this case tests")
    title: Optional[str] = Field(None, description="Short scenario title (e.g. 'Hypertensive emergency')")
    input_values: dict[str, Optional[Union[bool, int, float, str]]] = Field(
        default_factory=dict,
        description="Input id -> value (must match guideline inputs)",
    )
    expected_path: list[str] = Field(
        default_factory=list,
        description="Ordered list of node IDs that should be traversed",
    )
    expected_level: Optional[ActionLevel] = Field(None, description="Expected action level")
    expected_action: Optional[str] = Field(
        None,
        description="Expected action text (case-insensitive substring match)",
    )


# -----------------------------------------------------------------------------
# JSON Schema (versioned, for validation and docs)
# -----------------------------------------------------------------------------

SCHEMA_VERSION = "1.0.0"


def get_guideline_json_schema() -> dict[str, Any]:
    """
    Return the JSON schema for guideline documents (either format).
    $defs include nested types, DecisionResult and TestCase.
    """
    doc_schema = TypeAdapter(AnyGuideline).json_schema(by_alias=True)
    result_schema = DecisionResult.model_json_schema(by_alias=True)
    test_schema = TestCase.model_json_schema(by_alias=True)
    defs = {
        **doc_schema.get("$defs", {}),
        **result_schema.get("$defs", {}),
        **test_schema.get("$defs", {}),
        "DecisionResult": {k: v for k, v in result_schema.items() if k != "$defs"},
        "TestCase": {k: v for k, v in test_schema.items() if k != "$defs"},
    }
    return {
        "$schema": "https://json-schema.org/draft/2020-12/schema",
        "$id": "https://guidewalk.example/schemas/guideline.json",
        "title": "Guidewalk Guideline Schema",
        "description": "Legacy linked-node and graph/rules clinical guideline documents",
        "version": SCHEMA_VERSION,
        **{k: v for k, v in doc_schema.items() if k not in ("$defs", "$schema", "$id", "title", "description")},
        "$defs": defs,
    }


def write_guideline_schema_to_file(path: Optional[Union[str, Path]] = None) -> Path:
    """
    Write the guideline JSON schema to a file for versioning and validation.
    Default path: project root / shared/schemas/guideline_schema.json
    """
    if path is None:
        path = Path(__file__).resolve().parent.parent.parent / "shared" / "schemas" / "guideline_schema.json"
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(get_guideline_json_schema(), indent=2), encoding="utf-8")
    return path
