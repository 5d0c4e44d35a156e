"""Shared guideline document schemas (contract between the engine and its callers)."""

from shared.schemas.guideline import (
    ActionLevel,
    ActionOutput,
    AnyGuideline,
    ConditionalNote,
    DecisionNode,
    DecisionResult,
    GraphNodeType,
    Guideline,
    GuidelineFormat,
    GuidelineInput,
    InputType,
    NICEGraphEdge,
    NICEGraphNode,
    NICEGuideline,
    detect_format,
    is_nice_guideline,
    parse_guideline,
)

__all__ = [
    "ActionLevel",
    "ActionOutput",
    "AnyGuideline",
    "ConditionalNote",
    "DecisionNode",
    "DecisionResult",
    "GraphNodeType",
    "Guideline",
    "GuidelineFormat",
    "GuidelineInput",
    "InputType",
    "NICEGraphEdge",
    "NICEGraphNode",
    "NICEGuideline",
    "detect_format",
    "is_nice_guideline",
    "parse_guideline",
]
