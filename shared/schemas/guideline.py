"""
Guideline document schemas and Pydantic models.

Two document shapes are supported:

- legacy: linked decision nodes (``if`` / ``then`` / ``else`` / actions),
  evaluated natively by the decision engine.
- nice: typed graph nodes joined by labeled edges plus free-text IF-THEN
  rules, applied by an external reasoning layer.

The shape is recorded in an explicit ``format`` tag when a document is parsed,
so callers never have to re-infer it.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator

from guidewalk.utils.exceptions import GuidelineFormatError


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------


class InputType(str, Enum):
    """Type of a patient input field."""

    NUMBER = "number"
    BOOLEAN = "boolean"
    TEXT = "text"


class ActionLevel(str, Enum):
    """Clinical urgency of a terminal action (ascending)."""

    INFO = "info"
    ADVICE = "advice"
    START = "start"
    URGENT = "urgent"


class GuidelineFormat(str, Enum):
    """Document shape tag."""

    LEGACY = "legacy"
    NICE = "nice"


class GraphNodeType(str, Enum):
    """Type of node in a graph/rules guideline."""

    CONDITION = "condition"
    ACTION = "action"


# -----------------------------------------------------------------------------
# Legacy (linked decision-node) format
# -----------------------------------------------------------------------------


class GuidelineInput(BaseModel):
    """One patient-data field required by the guideline."""

    id: str = Field(..., description="Symbolic name used as a variable in conditions")
    label: str = Field(..., description="Human-readable prompt")
    type: InputType = Field(..., description="number, boolean or text")
    unit: Optional[str] = Field(None, description="Display unit (e.g. 'mmHg')")


class ActionOutput(BaseModel):
    """Terminal recommendation."""

    level: ActionLevel = Field(..., description="info, advice, start or urgent")
    text: str = Field(..., description="Recommendation body")

    model_config = {"frozen": True}


class ConditionalNote(BaseModel):
    """Note collected when its expression is true on visiting the owning node."""

    if_: str = Field(..., alias="if", description="Boolean expression over input ids")
    text: str = Field(..., description="Note body")

    model_config = {"populate_by_name": True}


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class DecisionNode(BaseModel):
    """
    One vertex of a legacy decision tree.

    - if: branching condition; absent for unconditional terminal nodes
    - then / else: next node ids for the true / false branch
    - then_action / else_action: terminal actions for the true / false branch
    - notes: evaluated on every visit, whichever branch is taken
    """

    id: str = Field(..., description="Unique node id")
    if_: Optional[str] = Field(None, alias="if", description="Branch condition")
    then: Optional[str] = Field(None, description="Next node id when the condition is true")
    else_: Optional[str] = Field(None, alias="else", description="Next node id when the condition is false")
    then_action: Optional[ActionOutput] = Field(None, description="Terminal action for the true branch")
    else_action: Optional[ActionOutput] = Field(None, description="Terminal action for the false branch")
    notes: list[ConditionalNote] = Field(default_factory=list, description="Conditional notes")

    model_config = {"populate_by_name": True, "extra": "allow"}

    @field_validator("if_", "then", "else_", mode="before")
    @classmethod
    def _empty_is_absent(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("notes", mode="before")
    @classmethod
    def _null_notes(cls, value: Any) -> Any:
        return value or []


class Guideline(BaseModel):
    """Legacy guideline: ordered inputs plus a list of linked decision nodes."""

    format: Literal["legacy"] = "legacy"
    guideline_id: str = Field(..., description="Unique guideline identifier")
    name: str = Field(..., description="Human-readable name")
    version: str = Field(..., description="Version or publication date")
    citation: str = Field("", description="Full citation text")
    citation_url: str = Field("", description="Source URL")
    inputs: list[GuidelineInput] = Field(default_factory=list, description="Inputs in interview order")
    nodes: list[DecisionNode] = Field(default_factory=list, description="Decision nodes (looked up by id)")

    model_config = {"populate_by_name": True}


# -----------------------------------------------------------------------------
# Graph/rules (NICE) format
# -----------------------------------------------------------------------------


class NICEGraphNode(BaseModel):
    """Typed node of a graph/rules guideline."""

    id: str = Field(..., description="Unique node id")
    type: GraphNodeType = Field(..., description="condition or action")
    text: str = Field(..., description="Condition or action text")


class NICEGraphEdge(BaseModel):
    """Directed, optionally labeled edge (e.g. 'yes', 'no', 'next')."""

    from_: str = Field(..., alias="from", description="Source node id")
    to: str = Field(..., description="Target node id")
    label: Optional[str] = Field(None, description="Edge label")

    model_config = {"populate_by_name": True}


class NICEGuideline(BaseModel):
    """Graph/rules guideline. Rules are free text for explanation, not evaluation."""

    format: Literal["nice"] = "nice"
    guideline_id: str = Field(..., description="Unique guideline identifier")
    name: str = Field(..., description="Human-readable name")
    version: str = Field(..., description="Version or publication date")
    citation: str = Field("", description="Full citation text")
    citation_url: str = Field("", description="Source URL")
    rules: list[str] = Field(default_factory=list, description="IF-THEN rule strings")
    nodes: list[NICEGraphNode] = Field(default_factory=list, description="Graph nodes")
    edges: list[NICEGraphEdge] = Field(default_factory=list, description="Graph edges")

    model_config = {"populate_by_name": True}


AnyGuideline = Annotated[Union[Guideline, NICEGuideline], Field(discriminator="format")]

_any_guideline_adapter: TypeAdapter = TypeAdapter(AnyGuideline)


# -----------------------------------------------------------------------------
# Evaluation result
# -----------------------------------------------------------------------------


class DecisionResult(BaseModel):
    """Outcome of one evaluation: action reached, node path, triggered notes."""

    action: ActionOutput
    path: list[str] = Field(default_factory=list, description="Visited node ids, root first")
    notes: list[str] = Field(default_factory=list, description="Triggered note texts in evaluation order")


# -----------------------------------------------------------------------------
# Type discrimination and parsing
# -----------------------------------------------------------------------------


def is_nice_guideline(guideline: Union[dict[str, Any], Guideline, NICEGuideline]) -> bool:
    """True for graph/rules documents: raw dicts carrying both 'rules' and 'edges', or parsed NICEGuideline."""
    if isinstance(guideline, dict):
        return "rules" in guideline and "edges" in guideline
    return isinstance(guideline, NICEGuideline)


def detect_format(data: dict[str, Any]) -> GuidelineFormat:
    """Decide the format tag for a raw document, or raise GuidelineFormatError."""
    if "format" in data:
        try:
            return GuidelineFormat(data["format"])
        except ValueError:
            raise GuidelineFormatError(
                f"Unknown guideline format '{data['format']}'",
                details={"format": data["format"]},
            ) from None
    # An empty node list is present; the engine reports its missing root
    missing = [key for key in ("guideline_id", "name", "nodes") if data.get(key) is None or data.get(key) == ""]
    if missing:
        raise GuidelineFormatError(
            f"Guideline is missing required fields: {', '.join(missing)}",
            details={"missing": missing},
        )
    if is_nice_guideline(data):
        return GuidelineFormat.NICE
    if "inputs" in data and "nodes" in data:
        return GuidelineFormat.LEGACY
    raise GuidelineFormatError(
        "Document is neither a legacy guideline (inputs + nodes) nor a graph/rules guideline (rules + edges)"
    )


def parse_guideline(data: Union[dict[str, Any], Guideline, NICEGuideline]) -> Union[Guideline, NICEGuideline]:
    """Parse a raw JSON document into a tagged Guideline or NICEGuideline."""
    if isinstance(data, (Guideline, NICEGuideline)):
        return data
    if not isinstance(data, dict):
        raise GuidelineFormatError("Guideline document must be a JSON object")
    tag = detect_format(data)
    try:
        return _any_guideline_adapter.validate_python({**data, "format": tag.value})
    except ValidationError as e:
        raise GuidelineFormatError(
            f"Invalid {tag.value} guideline: {e.error_count()} validation error(s)",
            details={"errors": e.errors(include_url=False, include_context=False)},
        ) from e
