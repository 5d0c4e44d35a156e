"""
Decision engine: walk a legacy guideline from its root node to one terminal action.

- evaluate: deterministic single pass from "root", collecting path and notes.
- summarize_inputs: human-readable rendering of the supplied inputs.

Condition failures read as False (see expression_service). Document problems
(missing nodes, malformed nodes, cycles) abort the evaluation and propagate.
"""

import logging
import os
import time
from typing import Any, Mapping, Optional, Union

from guidewalk.services.expression_service import evaluate_condition
from guidewalk.utils.exceptions import (
    CycleDetectedError,
    DecisionEngineError,
    MalformedNodeError,
    NodeNotFoundError,
    TraversalLimitError,
    UnsupportedGuidelineFormatError,
)
from guidewalk.utils.logging import log_evaluation
from shared.schemas import (
    DecisionNode,
    DecisionResult,
    Guideline,
    InputType,
    NICEGuideline,
    parse_guideline,
)

logger = logging.getLogger(__name__)

ROOT_NODE_ID = "root"
MAX_TRAVERSAL_STEPS = int(os.getenv("GUIDEWALK_MAX_TRAVERSAL_STEPS", "500"))


def _as_legacy(guideline: Union[Guideline, NICEGuideline, dict[str, Any]]) -> Guideline:
    parsed = parse_guideline(guideline)
    if isinstance(parsed, NICEGuideline):
        raise UnsupportedGuidelineFormatError(parsed.format)
    return parsed


def index_nodes(guideline: Guideline) -> dict[str, DecisionNode]:
    """Map node id -> node. The first node wins when ids are duplicated."""
    index: dict[str, DecisionNode] = {}
    for node in guideline.nodes:
        index.setdefault(node.id, node)
    return index


def _walk(
    nodes: dict[str, DecisionNode],
    inputs: Mapping[str, Any],
    max_steps: int,
) -> DecisionResult:
    path: list[str] = []
    notes: list[str] = []
    visited: set[str] = set()

    current = nodes.get(ROOT_NODE_ID)
    if current is None:
        raise NodeNotFoundError(ROOT_NODE_ID)

    while True:
        if current.id in visited:
            raise CycleDetectedError(current.id, path=path)
        if len(path) >= max_steps:
            raise TraversalLimitError(max_steps, path=path)
        visited.add(current.id)
        path.append(current.id)

        for note in current.notes:
            if evaluate_condition(note.if_, inputs):
                notes.append(note.text)

        if current.if_ is None:
            if current.then_action is None:
                raise MalformedNodeError(
                    current.id,
                    f"Node '{current.id}' has no condition and no then_action",
                    path=path,
                )
            return DecisionResult(action=current.then_action, path=path, notes=notes)

        condition_met = evaluate_condition(current.if_, inputs)
        branch_action = current.then_action if condition_met else current.else_action
        branch_next = current.then if condition_met else current.else_

        # An action ends traversal even when a next node is also set
        if branch_action is not None:
            return DecisionResult(action=branch_action, path=path, notes=notes)
        if not branch_next:
            branch = "then" if condition_met else "else"
            raise MalformedNodeError(
                current.id,
                f"Node '{current.id}' has neither a next node nor an action for its '{branch}' branch",
                path=path,
            )
        next_node = nodes.get(branch_next)
        if next_node is None:
            raise NodeNotFoundError(branch_next, path=path, referenced_by=current.id)
        current = next_node


def evaluate(
    guideline: Union[Guideline, dict[str, Any]],
    inputs: Mapping[str, Any],
    max_steps: Optional[int] = None,
) -> DecisionResult:
    """
    Walk the guideline from node "root" to a terminal action.

    Raises NodeNotFoundError, MalformedNodeError, CycleDetectedError or
    TraversalLimitError when the document cannot be walked, and
    UnsupportedGuidelineFormatError for graph/rules guidelines.
    """
    doc = _as_legacy(guideline)
    limit = max_steps if max_steps is not None else MAX_TRAVERSAL_STEPS
    start = time.perf_counter()
    try:
        result = _walk(index_nodes(doc), inputs or {}, limit)
    except DecisionEngineError as e:
        log_evaluation(
            logger,
            doc.guideline_id,
            e.path,
            duration_sec=time.perf_counter() - start,
            success=False,
            error=e.code,
        )
        raise
    log_evaluation(
        logger,
        doc.guideline_id,
        result.path,
        action_level=result.action.level.value,
        duration_sec=time.perf_counter() - start,
    )
    return result


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def summarize_inputs(guideline: Union[Guideline, dict[str, Any]], inputs: Mapping[str, Any]) -> str:
    """Render supplied inputs as 'Label: value unit' in declared order; empty values are skipped."""
    doc = _as_legacy(guideline)
    parts: list[str] = []
    for field in doc.inputs:
        value = (inputs or {}).get(field.id)
        if value is None or value == "":
            continue
        if field.type == InputType.BOOLEAN:
            parts.append(f"{field.label}: {'Yes' if value else 'No'}")
            continue
        unit = f" {field.unit}" if field.unit else ""
        parts.append(f"{field.label}: {_format_value(value)}{unit}")
    return ", ".join(parts)


class DecisionEngine:
    """One guideline and one set of inputs, evaluated on demand."""

    def __init__(self, guideline: Union[Guideline, dict[str, Any]], inputs: Mapping[str, Any]):
        self.guideline = _as_legacy(guideline)
        self.inputs = dict(inputs or {})

    def evaluate(self, max_steps: Optional[int] = None) -> DecisionResult:
        return evaluate(self.guideline, self.inputs, max_steps=max_steps)

    def summarize_inputs(self) -> str:
        return summarize_inputs(self.guideline, self.inputs)
