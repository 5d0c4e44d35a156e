"""Guidewalk services (expression evaluation, decision engine, validation, registry)."""

from guidewalk.services.expression_service import (
    evaluate_condition,
    evaluate_expression,
    parse_expression,
    referenced_identifiers,
)
from guidewalk.services.decision_service import (
    DecisionEngine,
    evaluate,
    summarize_inputs,
)
from guidewalk.services.graph_service import (
    PathStep,
    outgoing_edges,
    trace_path,
)
from guidewalk.services.validation_service import (
    ValidationIssue,
    validate_conditions,
    validate_graph,
    validate_guideline,
    validate_tree_structure,
)

__all__ = [
    "evaluate_condition",
    "evaluate_expression",
    "parse_expression",
    "referenced_identifiers",
    "DecisionEngine",
    "evaluate",
    "summarize_inputs",
    "PathStep",
    "outgoing_edges",
    "trace_path",
    "ValidationIssue",
    "validate_conditions",
    "validate_graph",
    "validate_guideline",
    "validate_tree_structure",
]
