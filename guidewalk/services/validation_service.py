"""
Static validation of guideline documents.

Legacy guidelines: root defined, references resolve, every branch ends in a
next node or an action, conditions parse and only use declared inputs, no
cycles reachable from root, all nodes reachable.

Graph/rules guidelines: node ids unique, edges reference existing nodes,
action nodes are leaves, rules present.
"""

import logging
import time
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field

from guidewalk.services.decision_service import ROOT_NODE_ID
from guidewalk.services.expression_service import IDENTIFIER_RE, KEYWORDS, referenced_identifiers
from guidewalk.utils.exceptions import ConditionEvaluationError
from guidewalk.utils.logging import log_validation_result
from shared.schemas import DecisionNode, GraphNodeType, Guideline, NICEGuideline, parse_guideline

logger = logging.getLogger(__name__)


class ValidationIssue(BaseModel):
    """A single validation finding."""

    code: str = Field(..., description="Issue code (e.g. missing_node, cycle)")
    message: str = Field(..., description="Human-readable message")
    node_id: Optional[str] = Field(None, description="Relevant node ID if applicable")
    path: Optional[list[str]] = Field(None, description="Path of node IDs if applicable")
    severity: Literal["error", "warning"] = "error"


# -----------------------------------------------------------------------------
# Legacy guidelines
# -----------------------------------------------------------------------------


def _branch_targets(node: DecisionNode) -> list[str]:
    """Next-node ids the engine could follow from node (actions take precedence)."""
    if node.if_ is None:
        return []
    targets = []
    if node.then_action is None and node.then:
        targets.append(node.then)
    if node.else_action is None and node.else_:
        targets.append(node.else_)
    return targets


def validate_inputs(guideline: Guideline) -> list[ValidationIssue]:
    """Check input ids are unique, identifier-like and not reserved words."""
    issues: list[ValidationIssue] = []
    seen: set[str] = set()
    for field in guideline.inputs:
        if field.id in seen:
            issues.append(ValidationIssue(code="duplicate_input", message=f"Input id '{field.id}' is declared more than once"))
        seen.add(field.id)
        if not IDENTIFIER_RE.match(field.id) or field.id in KEYWORDS:
            issues.append(
                ValidationIssue(code="invalid_input_id", message=f"Input id '{field.id}' is not a valid identifier")
            )
    return issues


def validate_tree_structure(guideline: Guideline) -> list[ValidationIssue]:
    """
    Check: root defined, node ids unique, references exist, branches complete,
    no cycles reachable from root, no unreachable nodes.
    """
    issues: list[ValidationIssue] = []
    nodes: dict[str, DecisionNode] = {}
    for node in guideline.nodes:
        if node.id in nodes:
            issues.append(
                ValidationIssue(code="duplicate_node", message=f"Node id '{node.id}' is used more than once", node_id=node.id)
            )
            continue
        nodes[node.id] = node

    for nid, node in nodes.items():
        if node.if_ is None:
            if node.then_action is None:
                issues.append(
                    ValidationIssue(
                        code="malformed_node",
                        message=f"Node '{nid}' has no condition and no then_action",
                        node_id=nid,
                    )
                )
            continue
        for branch, action, target in (("then", node.then_action, node.then), ("else", node.else_action, node.else_)):
            if action is None and not target:
                issues.append(
                    ValidationIssue(
                        code="malformed_node",
                        message=f"Node '{nid}' has neither a next node nor an action for its '{branch}' branch",
                        node_id=nid,
                    )
                )
            elif action is None and target not in nodes:
                issues.append(
                    ValidationIssue(
                        code="missing_node",
                        message=f"'{branch}' target '{target}' of node '{nid}' does not exist",
                        node_id=target,
                        path=[nid, target],
                    )
                )

    if ROOT_NODE_ID not in nodes:
        issues.append(ValidationIssue(code="root_not_found", message=f"No node with id '{ROOT_NODE_ID}'"))
        return issues

    # Depth-first walk from root; a target still on the current path closes a cycle
    on_path, done = set(), set()
    path = [ROOT_NODE_ID]
    on_path.add(ROOT_NODE_ID)
    stack = [(ROOT_NODE_ID, iter(_branch_targets(nodes[ROOT_NODE_ID])))]
    while stack:
        nid, targets = stack[-1]
        target = next(targets, None)
        if target is None:
            stack.pop()
            path.pop()
            on_path.discard(nid)
            done.add(nid)
            continue
        if target not in nodes or target in done:
            continue
        if target in on_path:
            issues.append(
                ValidationIssue(
                    code="cycle",
                    message=f"Cycle detected: '{nid}' leads back to '{target}'",
                    node_id=target,
                    path=path + [target],
                )
            )
            continue
        on_path.add(target)
        path.append(target)
        stack.append((target, iter(_branch_targets(nodes[target]))))

    for nid in nodes:
        if nid not in done:
            issues.append(
                ValidationIssue(
                    code="unreachable_node",
                    message=f"Node '{nid}' is not reachable from '{ROOT_NODE_ID}'",
                    node_id=nid,
                    severity="warning",
                )
            )
    return issues


def validate_conditions(guideline: Guideline) -> list[ValidationIssue]:
    """Check: every condition and note parses and only references declared inputs."""
    issues: list[ValidationIssue] = []
    declared = {i.id for i in guideline.inputs}

    def check(nid: str, expression: str, where: str) -> None:
        try:
            names = referenced_identifiers(expression)
        except ConditionEvaluationError as e:
            issues.append(
                ValidationIssue(code="condition_syntax", message=f"{where} of node '{nid}': {e.message}", node_id=nid)
            )
            return
        for name in names:
            if name not in declared:
                issues.append(
                    ValidationIssue(
                        code="unknown_identifier",
                        message=f"{where} of node '{nid}' references undeclared input '{name}'",
                        node_id=nid,
                    )
                )

    for node in guideline.nodes:
        if node.if_ is not None:
            check(node.id, node.if_, "Condition")
        for i, note in enumerate(node.notes):
            check(node.id, note.if_, f"Note {i + 1}")
    return issues


# -----------------------------------------------------------------------------
# Graph/rules guidelines
# -----------------------------------------------------------------------------


def validate_graph(guideline: NICEGuideline) -> list[ValidationIssue]:
    """Check graph/rules documents: unique nodes, edge endpoints exist, action nodes are leaves."""
    issues: list[ValidationIssue] = []
    node_types: dict[str, GraphNodeType] = {}
    for node in guideline.nodes:
        if node.id in node_types:
            issues.append(
                ValidationIssue(code="duplicate_node", message=f"Node id '{node.id}' is used more than once", node_id=node.id)
            )
            continue
        node_types[node.id] = node.type

    for edge in guideline.edges:
        for end in (edge.from_, edge.to):
            if end not in node_types:
                issues.append(
                    ValidationIssue(
                        code="missing_node",
                        message=f"Edge '{edge.from_}' -> '{edge.to}' references unknown node '{end}'",
                        node_id=end,
                        path=[edge.from_, edge.to],
                    )
                )
        if node_types.get(edge.from_) == GraphNodeType.ACTION:
            issues.append(
                ValidationIssue(
                    code="action_has_children",
                    message=f"Action node '{edge.from_}' has outgoing edges; action nodes are usually leaves",
                    node_id=edge.from_,
                    severity="warning",
                )
            )

    if not guideline.rules:
        issues.append(ValidationIssue(code="no_rules", message="Guideline has no IF-THEN rules", severity="warning"))
    return issues


def validate_guideline(guideline: Union[Guideline, NICEGuideline, dict[str, Any]]) -> list[ValidationIssue]:
    """Run every check that applies to the document's format."""
    start = time.perf_counter()
    doc = parse_guideline(guideline)
    if isinstance(doc, NICEGuideline):
        issues = validate_graph(doc)
    else:
        issues = validate_inputs(doc) + validate_tree_structure(doc) + validate_conditions(doc)
    errors = sum(1 for i in issues if i.severity == "error")
    log_validation_result(
        logger,
        doc.guideline_id,
        error_count=errors,
        warning_count=len(issues) - errors,
        duration_sec=time.perf_counter() - start,
    )
    return issues
