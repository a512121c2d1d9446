"""Layout engine public API."""

from __future__ import annotations

from mermaid_layout.layout.engine import (
    LayeredLayout,
    compute_layout,
    enclose_subgraphs,
    fit_scale,
    fit_to_viewport,
    natural_size,
)
from mermaid_layout.layout.layered import (
    LayerAssignment,
    compute_subgraph_bounds,
    group_by_subgraph,
    label_dimensions,
    place_block,
    position_nodes,
    route_edges,
    shape_padding,
    shift_into_view,
    size_nodes,
    slot_size,
    translate_subgraph,
)
from mermaid_layout.layout.types import (
    MIN_NODE_HEIGHT,
    MIN_NODE_WIDTH,
    MIN_SCALE,
    OUTER_PADDING,
    TITLE_BAR_HEIGHT,
    FontMetrics,
    HeuristicMetrics,
    Point,
)

__all__ = [
    "MIN_NODE_HEIGHT",
    "MIN_NODE_WIDTH",
    "MIN_SCALE",
    "OUTER_PADDING",
    "TITLE_BAR_HEIGHT",
    "FontMetrics",
    "HeuristicMetrics",
    "LayerAssignment",
    "LayeredLayout",
    "Point",
    "compute_layout",
    "compute_subgraph_bounds",
    "enclose_subgraphs",
    "fit_scale",
    "fit_to_viewport",
    "group_by_subgraph",
    "label_dimensions",
    "natural_size",
    "place_block",
    "position_nodes",
    "route_edges",
    "shape_padding",
    "shift_into_view",
    "size_nodes",
    "slot_size",
    "translate_subgraph",
]
