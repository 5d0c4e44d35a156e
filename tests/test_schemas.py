"""Tests for guideline document models, format detection and schema export."""

import json

import pytest
from pydantic import ValidationError

from guidewalk.models import SCHEMA_VERSION, TestCase, get_guideline_json_schema, write_guideline_schema_to_file
from guidewalk.utils.exceptions import GuidelineFormatError
from shared.schemas import (
    ActionLevel,
    ActionOutput,
    DecisionNode,
    GraphNodeType,
    Guideline,
    GuidelineFormat,
    NICEGuideline,
    detect_format,
    is_nice_guideline,
    parse_guideline,
)

from tests.helpers import make_guideline


# -----------------------------------------------------------------------------
# Format detection
# -----------------------------------------------------------------------------


def test_is_nice_guideline_on_raw_documents(sample_guideline, nice_guideline):
    assert is_nice_guideline(nice_guideline) is True
    assert is_nice_guideline(sample_guideline) is False
    assert is_nice_guideline({"rules": []}) is False
    assert is_nice_guideline({"edges": []}) is False
    assert is_nice_guideline({"rules": [], "edges": []}) is True


def test_is_nice_guideline_on_parsed_documents(sample_guideline, nice_guideline):
    assert is_nice_guideline(parse_guideline(nice_guideline)) is True
    assert is_nice_guideline(parse_guideline(sample_guideline)) is False


def test_detect_format(sample_guideline, nice_guideline):
    assert detect_format(sample_guideline) == GuidelineFormat.LEGACY
    assert detect_format(nice_guideline) == GuidelineFormat.NICE
    assert detect_format({"format": "nice"}) == GuidelineFormat.NICE


def test_detect_format_rejects_unknown_tag():
    with pytest.raises(GuidelineFormatError) as exc_info:
        detect_format({"format": "flowchart"})
    assert exc_info.value.details == {"format": "flowchart"}


@pytest.mark.parametrize("missing", ["guideline_id", "name", "nodes"])
def test_detect_format_requires_identity_fields(sample_guideline, missing):
    del sample_guideline[missing]
    with pytest.raises(GuidelineFormatError) as exc_info:
        detect_format(sample_guideline)
    assert missing in exc_info.value.details["missing"]


def test_detect_format_accepts_empty_node_list():
    assert detect_format(make_guideline([])) == GuidelineFormat.LEGACY
    assert parse_guideline(make_guideline([])).nodes == []
    with pytest.raises(GuidelineFormatError):
        detect_format({**make_guideline([]), "nodes": None})


def test_detect_format_rejects_unrecognized_shape():
    with pytest.raises(GuidelineFormatError, match="neither"):
        detect_format({"guideline_id": "g", "name": "G", "nodes": [{"id": "root"}]})


# -----------------------------------------------------------------------------
# Parsing
# -----------------------------------------------------------------------------


def test_parse_legacy_guideline(sample_guideline):
    doc = parse_guideline(sample_guideline)
    assert isinstance(doc, Guideline)
    assert doc.format == "legacy"
    assert [i.id for i in doc.inputs][:2] == ["systolic_bp", "diastolic_bp"]
    root = doc.nodes[0]
    assert root.if_ == "systolic_bp >= 180 || diastolic_bp >= 120"
    assert root.then == "severe_bp"
    assert root.else_ == "clinic_bp"
    assert root.notes[0].if_ == "age >= 80"


def test_parse_nice_guideline(nice_guideline):
    doc = parse_guideline(nice_guideline)
    assert isinstance(doc, NICEGuideline)
    assert doc.format == "nice"
    assert len(doc.rules) == 4
    assert doc.nodes[2].type == GraphNodeType.ACTION
    assert doc.edges[0].from_ == "n1"
    assert doc.edges[0].label == "yes"


def test_parse_returns_parsed_documents_unchanged(sample_guideline):
    doc = parse_guideline(sample_guideline)
    assert parse_guideline(doc) is doc


def test_parse_rejects_non_object():
    with pytest.raises(GuidelineFormatError, match="JSON object"):
        parse_guideline(["not", "a", "guideline"])


def test_parse_reports_field_errors():
    data = make_guideline([{"id": "root", "then_action": {"level": "critical", "text": "x"}}])
    with pytest.raises(GuidelineFormatError) as exc_info:
        parse_guideline(data)
    err = exc_info.value
    assert err.code == "INVALID_GUIDELINE"
    assert err.details["errors"]
    assert any("level" in [str(p) for p in e["loc"]] for e in err.details["errors"])


def test_blank_links_are_absent():
    node = DecisionNode.model_validate({"id": "n", "if": "  ", "then": "", "else": None, "notes": None})
    assert node.if_ is None
    assert node.then is None
    assert node.else_ is None
    assert node.notes == []


def test_alias_round_trip(sample_guideline):
    doc = parse_guideline(sample_guideline)
    dumped = doc.model_dump(mode="json", by_alias=True, exclude_none=True)
    assert dumped["format"] == "legacy"
    assert dumped["nodes"][0]["if"] == sample_guideline["nodes"][0]["if"]
    assert dumped["nodes"][0]["else"] == "clinic_bp"
    assert "if_" not in dumped["nodes"][0]
    assert parse_guideline(dumped) == doc


def test_nodes_keep_unknown_fields():
    doc = parse_guideline(make_guideline([{"id": "root", "then_action": {"level": "info", "text": "x"}, "page": 12}]))
    assert doc.nodes[0].model_extra == {"page": 12}


def test_action_output_is_frozen():
    action = ActionOutput(level=ActionLevel.URGENT, text="Refer")
    with pytest.raises(ValidationError):
        action.text = "Changed"


def test_test_case_keeps_value_types():
    case = TestCase(
        id="c1",
        guideline_id="g",
        input_values={"age": 65, "qrisk": 12.5, "confirmed": True, "stage": "2"},
        expected_level="start",
    )
    assert case.input_values == {"age": 65, "qrisk": 12.5, "confirmed": True, "stage": "2"}
    assert isinstance(case.input_values["age"], int)
    assert case.expected_level == ActionLevel.START


# -----------------------------------------------------------------------------
# JSON schema export
# -----------------------------------------------------------------------------


def test_guideline_json_schema():
    schema = get_guideline_json_schema()
    assert schema["version"] == SCHEMA_VERSION
    assert "oneOf" in schema or "anyOf" in schema
    defs = schema["$defs"]
    for name in ("Guideline", "NICEGuideline", "DecisionNode", "DecisionResult", "TestCase"):
        assert name in defs
    assert "if" in defs["DecisionNode"]["properties"]
    assert "from" in defs["NICEGraphEdge"]["properties"]


def test_write_guideline_schema_to_file(tmp_path):
    out = write_guideline_schema_to_file(tmp_path / "schemas" / "guideline.json")
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["title"] == "Guidewalk Guideline Schema"
