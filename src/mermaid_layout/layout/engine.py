"""Layout engine orchestration and viewport fit."""

from __future__ import annotations

import logging

from mermaid_layout.ir.graph import FlowchartState
from mermaid_layout.layout.layered import (
    LayerAssignment,
    compute_subgraph_bounds,
    position_nodes,
    route_edges,
    shift_into_view,
    size_nodes,
)
from mermaid_layout.layout.types import (
    EMPTY_CONTENT_SIZE,
    MIN_SCALE,
    OUTER_PADDING,
    FontMetrics,
    HeuristicMetrics,
)

logger = logging.getLogger(__name__)


# ─── Viewport Fit ────────────────────────────────────────────────────────────


def natural_size(state: FlowchartState) -> tuple[float, float]:
    """Unscaled extent of all nodes and edge paths plus the outer padding."""
    max_x = 0.0
    max_y = 0.0
    for node in state.nodes:
        max_x = max(max_x, node.x + node.width)
        max_y = max(max_y, node.y + node.height)
    for edge in state.edges:
        for x, y in edge.path:
            max_x = max(max_x, x)
            max_y = max(max_y, y)
    return (max_x + OUTER_PADDING * 2, max_y + OUTER_PADDING * 2)


def fit_scale(natural: tuple[float, float], available: tuple[float, float]) -> float:
    """Uniform scale that fits the padded content into the viewport, floored at MIN_SCALE."""
    natural_w, natural_h = natural
    avail_w, avail_h = available
    inner = OUTER_PADDING * 2
    scale_x = 1.0
    scale_y = 1.0
    if natural_w > avail_w and avail_w > 0:
        scale_x = (avail_w - inner) / (natural_w - inner)
    if natural_h > avail_h and avail_h > 0:
        scale_y = (avail_h - inner) / (natural_h - inner)
    return max(MIN_SCALE, min(scale_x, scale_y))


def fit_to_viewport(state: FlowchartState, available_width: float, available_height: float) -> float:
    """Scale positions (never sizes) into the viewport and re-add the outer padding.

    Edge paths are re-derived from the moved nodes so they stay anchored to
    node centres even though node sizes do not scale.
    """
    natural = natural_size(state)
    state.natural_width, state.natural_height = natural
    scale = fit_scale(natural, (available_width, available_height))

    for node in state.nodes:
        node.x = OUTER_PADDING + node.x * scale
        node.y = OUTER_PADDING + node.y * scale
    route_edges(state)

    state.scale = scale
    return scale


def enclose_subgraphs(state: FlowchartState) -> None:
    """Grow the natural and content size so every subgraph box fits inside the outer padding."""
    bounded = [sg for sg in state.subgraphs if sg.has_bounds]
    if not bounded:
        return
    right = max(sg.x + sg.width for sg in bounded) + OUTER_PADDING
    bottom = max(sg.y + sg.height for sg in bounded) + OUTER_PADDING
    state.natural_width = max(state.natural_width, right)
    state.natural_height = max(state.natural_height, bottom)
    state.content_width = state.natural_width - OUTER_PADDING * 2
    state.content_height = state.natural_height - OUTER_PADDING * 2


# ─── LayeredLayout Engine ────────────────────────────────────────────────────


class LayeredLayout:
    """Layered layout engine: size, layer, position, route, fit, bound."""

    def __init__(self, metrics: FontMetrics | None = None) -> None:
        self.metrics: FontMetrics = metrics if metrics is not None else HeuristicMetrics()

    def layout(self, state: FlowchartState, available_width: float, available_height: float) -> None:
        state.content_offset_x = 0.0
        state.content_offset_y = 0.0

        if not state.nodes:
            for sg in state.subgraphs:
                sg.x = sg.y = sg.width = sg.height = 0.0
                sg.has_bounds = False
            route_edges(state)
            state.natural_width = EMPTY_CONTENT_SIZE + OUTER_PADDING * 2
            state.natural_height = EMPTY_CONTENT_SIZE + OUTER_PADDING * 2
            state.content_width = EMPTY_CONTENT_SIZE
            state.content_height = EMPTY_CONTENT_SIZE
            state.scale = 1.0
            self._finish(state, available_width, available_height)
            return

        size_nodes(state, self.metrics)
        assignment = LayerAssignment.assign(state)
        logger.debug("%d nodes in %d layers", state.node_count(), assignment.layer_count)
        position_nodes(state, assignment)
        routed = route_edges(state)
        logger.debug("routed %d of %d edges", routed, state.edge_count())

        scale = fit_to_viewport(state, available_width, available_height)
        state.content_width = state.natural_width - OUTER_PADDING * 2
        state.content_height = state.natural_height - OUTER_PADDING * 2
        logger.debug(
            "natural %.1f x %.1f, viewport %.1f x %.1f, scale %.3f",
            state.natural_width,
            state.natural_height,
            available_width,
            available_height,
            scale,
        )

        compute_subgraph_bounds(state)
        dx, dy = shift_into_view(state)
        if dx or dy:
            state.content_offset_x = dx
            state.content_offset_y = dy
            state.natural_width += dx
            state.natural_height += dy
            state.content_width += dx
            state.content_height += dy
            logger.debug("shifted content by (%.1f, %.1f) to fit subgraph boxes", dx, dy)
        enclose_subgraphs(state)

        self._finish(state, available_width, available_height)

    @staticmethod
    def _finish(state: FlowchartState, available_width: float, available_height: float) -> None:
        state.layout_computed = True
        state.computed_width = float(available_width)
        state.computed_height = float(available_height)


def compute_layout(
    state: object,
    available_width: float,
    available_height: float,
    metrics: FontMetrics | None = None,
) -> None:
    """Lay out ``state`` in place for the given viewport.

    Does nothing for anything but a FlowchartState, and nothing when the
    layout is already computed for the same viewport size.
    """
    if not isinstance(state, FlowchartState):
        logger.debug("compute_layout called with %s; ignored", type(state).__name__)
        return
    if (
        state.layout_computed
        and state.computed_width == available_width
        and state.computed_height == available_height
    ):
        return
    LayeredLayout(metrics).layout(state, available_width, available_height)
