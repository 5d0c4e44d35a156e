"""
Exception hierarchy for Guidewalk.

Condition errors are recoverable: the engine logs them and treats the
condition as false. Engine and document errors are fatal to an evaluation
and propagate to the caller.
"""

from typing import Any, Optional


class GuidewalkError(Exception):
    """Base exception with a stable error code and structured details."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class GuidelineFormatError(GuidewalkError):
    """Document is not a valid legacy or graph/rules guideline."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message=message, code="INVALID_GUIDELINE", details=details)


# -----------------------------------------------------------------------------
# Condition evaluation (recoverable)
# -----------------------------------------------------------------------------


class ConditionEvaluationError(GuidewalkError):
    """A condition or note expression could not be parsed or evaluated."""

    reason = "evaluation"

    def __init__(self, message: str, expression: str = "", details: Optional[dict[str, Any]] = None):
        super().__init__(
            message=message,
            code="CONDITION_ERROR",
            details={"expression": expression, "reason": self.reason, **(details or {})},
        )
        self.expression = expression


class ConditionSyntaxError(ConditionEvaluationError):
    """Malformed expression."""

    reason = "syntax"


class UnresolvedIdentifierError(ConditionEvaluationError):
    """Identifier not present in the input mapping, or not yet supplied."""

    reason = "unresolved_identifier"

    def __init__(self, name: str, expression: str = ""):
        super().__init__(
            f"Identifier '{name}' has no value",
            expression=expression,
            details={"identifier": name},
        )
        self.name = name


class ConditionTypeError(ConditionEvaluationError):
    """Operands of the wrong kind for an operator."""

    reason = "type_mismatch"


# -----------------------------------------------------------------------------
# Traversal (fatal)
# -----------------------------------------------------------------------------


class DecisionEngineError(GuidewalkError):
    """Evaluation aborted because the guideline document cannot be walked."""

    def __init__(
        self,
        message: str,
        code: str = "ENGINE_ERROR",
        node_id: Optional[str] = None,
        path: Optional[list[str]] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code=code,
            details={"node_id": node_id, "path": list(path or []), **(details or {})},
        )
        self.node_id = node_id
        self.path = list(path or [])


class NodeNotFoundError(DecisionEngineError):
    """Referenced node id (root, then or else target) does not exist."""

    def __init__(self, node_id: str, path: Optional[list[str]] = None, referenced_by: Optional[str] = None):
        where = f" (referenced by '{referenced_by}')" if referenced_by else ""
        super().__init__(
            f"Node '{node_id}' not found{where}",
            code="NODE_NOT_FOUND",
            node_id=node_id,
            path=path,
            details={"referenced_by": referenced_by},
        )


class MalformedNodeError(DecisionEngineError):
    """Node gives neither a next node nor an action for the branch taken."""

    def __init__(self, node_id: str, message: str, path: Optional[list[str]] = None):
        super().__init__(message, code="MALFORMED_NODE", node_id=node_id, path=path)


class CycleDetectedError(DecisionEngineError):
    """Traversal came back to a node already on the path."""

    def __init__(self, node_id: str, path: Optional[list[str]] = None):
        super().__init__(
            f"Cycle detected: node '{node_id}' revisited",
            code="CYCLE_DETECTED",
            node_id=node_id,
            path=path,
        )


class TraversalLimitError(DecisionEngineError):
    """Traversal exceeded the configured step ceiling."""

    def __init__(self, max_steps: int, path: Optional[list[str]] = None):
        super().__init__(
            f"Traversal exceeded {max_steps} steps",
            code="TRAVERSAL_LIMIT",
            node_id=path[-1] if path else None,
            path=path,
            details={"max_steps": max_steps},
        )
        self.max_steps = max_steps


class UnsupportedGuidelineFormatError(DecisionEngineError):
    """Guideline format has no native evaluator."""

    def __init__(self, guideline_format: str):
        super().__init__(
            f"Guidelines in '{guideline_format}' format are not evaluated by the decision engine",
            code="UNSUPPORTED_FORMAT",
            details={"format": guideline_format},
        )


class InvalidPathError(GuidewalkError):
    """Reported path is not a walk along the guideline graph."""

    def __init__(self, message: str, from_id: Optional[str] = None, to_id: Optional[str] = None):
        super().__init__(message, code="INVALID_PATH", details={"from": from_id, "to": to_id})
