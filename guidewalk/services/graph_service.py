"""
Graph/rules (NICE) guidelines: edge lookup and reported-path tracing.

These guidelines are applied by an external reasoning layer, which reports
back the node ids it went through. This module checks such a path against the
document's edges and returns it as readable steps; it does not decide branches.
"""

import logging
from typing import Any, Optional, Union

from pydantic import BaseModel, Field

from guidewalk.utils.exceptions import InvalidPathError, NodeNotFoundError, UnsupportedGuidelineFormatError
from shared.schemas import GraphNodeType, Guideline, NICEGraphEdge, NICEGuideline, parse_guideline

logger = logging.getLogger(__name__)


class PathStep(BaseModel):
    """One node on a traced path, with the label of the edge that led to it."""

    node_id: str
    type: GraphNodeType
    text: str
    edge_label: Optional[str] = Field(None, description="Label of the incoming edge (None for the first step)")


def _as_nice(guideline: Union[NICEGuideline, Guideline, dict[str, Any]]) -> NICEGuideline:
    parsed = parse_guideline(guideline)
    if not isinstance(parsed, NICEGuideline):
        raise UnsupportedGuidelineFormatError(parsed.format)
    return parsed


def outgoing_edges(guideline: Union[NICEGuideline, dict[str, Any]], node_id: str) -> list[NICEGraphEdge]:
    """Edges leaving node_id, in authored order."""
    doc = _as_nice(guideline)
    return [e for e in doc.edges if e.from_ == node_id]


def trace_path(guideline: Union[NICEGuideline, dict[str, Any]], path: list[str]) -> list[PathStep]:
    """
    Resolve a reported path of node ids into steps.

    Raises NodeNotFoundError for unknown ids and InvalidPathError when two
    consecutive ids are not joined by an edge.
    """
    doc = _as_nice(guideline)
    nodes = {}
    for node in doc.nodes:
        nodes.setdefault(node.id, node)

    steps: list[PathStep] = []
    previous: Optional[str] = None
    for position, node_id in enumerate(path):
        node = nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id, path=path[:position])
        label = None
        if previous is not None:
            edge = next((e for e in doc.edges if e.from_ == previous and e.to == node_id), None)
            if edge is None:
                raise InvalidPathError(
                    f"No edge from '{previous}' to '{node_id}'",
                    from_id=previous,
                    to_id=node_id,
                )
            label = edge.label
        steps.append(PathStep(node_id=node.id, type=node.type, text=node.text, edge_label=label))
        previous = node_id
    logger.debug("Traced %d steps on guideline %s", len(steps), doc.guideline_id)
    return steps
