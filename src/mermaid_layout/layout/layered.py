"""Layered flowchart layout phases.

Phases:
  A. Node sizing (font metrics + shape padding)
  B. Layer assignment (longest path, cycle tolerant)
  C. Positioning on a uniform slot grid, with subgraph direction overrides
  D. Edge routing (straight, centre to centre)
  E. Subgraph bounding boxes

Every phase writes into the records of a FlowchartState in place. The viewport
fit that runs between D and E lives in engine.py.
"""

from __future__ import annotations

import logging

import networkx as nx

from mermaid_layout.ir.graph import FlowchartState, NodeData
from mermaid_layout.layout.types import (
    EMPTY_LABEL_WIDTH,
    MIN_NODE_HEIGHT,
    MIN_NODE_WIDTH,
    NODE_PADDING_X,
    NODE_PADDING_Y,
    TITLE_BAR_HEIGHT,
    FontMetrics,
    Point,
)
from mermaid_layout.types import Direction, NodeShape

logger = logging.getLogger(__name__)


# ─── Node Sizing ─────────────────────────────────────────────────────────────


def label_dimensions(label: str, font_size: float, metrics: FontMetrics) -> tuple[float, float]:
    """Text extents of a possibly multi-line label: widest line, height x lines."""
    line_height = metrics.font_height(font_size)
    if not label:
        return (EMPTY_LABEL_WIDTH, line_height)
    lines = label.split("\n")
    width = max(metrics.text_width(line, font_size) for line in lines)
    return (width, line_height * len(lines))


def shape_padding(shape: NodeShape) -> tuple[float, float]:
    if shape is NodeShape.Diamond:
        return (NODE_PADDING_X * 2.0, NODE_PADDING_Y * 2.0)
    if shape in (NodeShape.Circle, NodeShape.Hexagon):
        return (NODE_PADDING_X * 1.5, NODE_PADDING_Y * 1.5)
    return (NODE_PADDING_X, NODE_PADDING_Y)


def size_nodes(state: FlowchartState, metrics: FontMetrics) -> None:
    for node in state.nodes:
        text_w, text_h = label_dimensions(node.label, state.font_size, metrics)
        pad_x, pad_y = shape_padding(node.shape)
        node.width = max(MIN_NODE_WIDTH, text_w + pad_x)
        node.height = max(MIN_NODE_HEIGHT, text_h + pad_y)
        if node.shape.is_square:
            size = max(node.width, node.height)
            node.width = size
            node.height = size


# ─── Layer Assignment ────────────────────────────────────────────────────────


class LayerAssignment:
    def __init__(self, layers: dict[str, int], layer_count: int) -> None:
        self.layers = layers
        self.layer_count = layer_count

    @classmethod
    def assign(cls, state: FlowchartState) -> LayerAssignment:
        """Longest-path layering that tolerates cycles.

        A node is placed once every resolved predecessor is placed, at one
        past the deepest of them. When that stalls on a cycle, one node whose
        predecessors outside its own strongly connected component are all
        placed is forced in, and relaxation resumes. Edges inside a strongly
        connected component are the only ones that may point backwards.
        """
        order = [node.id for node in state.nodes]
        if not order:
            return cls(layers={}, layer_count=0)

        graph = state.topology()
        preds = {node_id: [p for p in graph.predecessors(node_id) if p != node_id] for node_id in order}
        component: dict[str, int] = {}
        for index, scc in enumerate(nx.strongly_connected_components(graph)):
            for node_id in scc:
                component[node_id] = index

        layers: dict[str, int] = {}
        for node_id in order:
            if not preds[node_id]:
                layers[node_id] = 0
        if not layers:
            # every node has a predecessor: seed one with none outside its own component
            _break_cycle(order, preds, component, layers)

        bound = 2 * len(order)
        iterations = 0
        while len(layers) < len(order) and iterations < bound:
            iterations += 1
            progress = False
            for node_id in order:
                if node_id in layers:
                    continue
                if all(p in layers for p in preds[node_id]):
                    layers[node_id] = 1 + max((layers[p] for p in preds[node_id]), default=-1)
                    progress = True
            if progress:
                continue

            forced = _break_cycle(order, preds, component, layers)
            if forced is None:
                break
            logger.debug("cycle: forcing %r into layer %d", forced, layers[forced])

        for node_id in order:
            if node_id not in layers:
                layers[node_id] = 0

        layer_count = max(layers.values()) + 1
        return cls(layers=layers, layer_count=layer_count)


def _break_cycle(
    order: list[str],
    preds: dict[str, list[str]],
    component: dict[str, int],
    layers: dict[str, int],
) -> str | None:
    for node_id in order:
        if node_id in layers:
            continue
        outside = [p for p in preds[node_id] if component[p] != component[node_id]]
        if all(p in layers for p in outside):
            placed = [layers[p] for p in preds[node_id] if p in layers]
            layers[node_id] = 1 + max(placed) if placed else 0
            return node_id
    return None


# ─── Positioning ─────────────────────────────────────────────────────────────


def slot_size(state: FlowchartState) -> tuple[float, float]:
    """Uniform grid slot: the largest node width and height in the diagram."""
    slot_w = max([MIN_NODE_WIDTH] + [n.width for n in state.nodes])
    slot_h = max([MIN_NODE_HEIGHT] + [n.height for n in state.nodes])
    return (slot_w, slot_h)


def _ancestor_chain(state: FlowchartState, subgraph_id: str | None) -> list[str]:
    """Subgraph ids from the outermost ancestor down to ``subgraph_id``."""
    chain: list[str] = []
    seen: set[str] = set()
    current = subgraph_id
    while current is not None and current not in seen:
        seen.add(current)
        chain.append(current)
        sg = state.find_subgraph(current)
        current = sg.parent_id if sg is not None else None
    chain.reverse()
    return chain


def group_by_subgraph(state: FlowchartState, members: list[NodeData]) -> list[NodeData]:
    """Reorder one layer so each subgraph's nodes are contiguous, nesting included.

    Groups keep first-appearance order at every nesting level.
    """
    first_seen: dict[tuple[str, ...], int] = {}
    keyed: list[tuple[tuple[int, ...], NodeData]] = []
    for index, node in enumerate(members):
        chain = _ancestor_chain(state, node.subgraph_id)
        key: list[int] = []
        for depth in range(1, len(chain) + 1):
            prefix = tuple(chain[:depth])
            first_seen.setdefault(prefix, index)
            key.append(first_seen[prefix])
        key.append(index)
        keyed.append((tuple(key), node))
    keyed.sort(key=lambda item: item[0])
    return [node for _, node in keyed]


def place_block(
    state: FlowchartState,
    nodes: list[NodeData],
    layer_of: dict[str, int],
    direction: Direction,
    slot: tuple[float, float],
) -> None:
    """Place ``nodes`` on the slot grid with the block's origin at (0, 0)."""
    by_layer: dict[int, list[NodeData]] = {}
    for node in nodes:
        by_layer.setdefault(layer_of[node.id], []).append(node)
    if not by_layer:
        return

    slot_w, slot_h = slot
    horizontal = direction.is_horizontal
    primary_step = (slot_w if horizontal else slot_h) + state.rank_spacing
    cross_step = (slot_h if horizontal else slot_w) + state.node_spacing
    max_layer = max(by_layer)
    widest = max(len(members) for members in by_layer.values())

    for layer in sorted(by_layer):
        ordered = group_by_subgraph(state, by_layer[layer])
        rank = max_layer - layer if direction.is_reversed else layer
        primary = rank * primary_step
        start = (widest - len(ordered)) * cross_step / 2
        for index, node in enumerate(ordered):
            cross = start + index * cross_step
            if horizontal:
                node.x = primary + (slot_w - node.width) / 2
                node.y = cross + (slot_h - node.height) / 2
            else:
                node.x = cross + (slot_w - node.width) / 2
                node.y = primary + (slot_h - node.height) / 2


def _slot_origin(nodes: list[NodeData], slot: tuple[float, float]) -> tuple[float, float]:
    slot_w, slot_h = slot
    return (
        min(n.x - (slot_w - n.width) / 2 for n in nodes),
        min(n.y - (slot_h - n.height) / 2 for n in nodes),
    )


def translate_subgraph(state: FlowchartState, subgraph_id: str, dx: float, dy: float) -> None:
    """Shift a subgraph's nodes and, recursively, its nested subgraphs' nodes."""
    for node in state.subgraph_members(subgraph_id):
        node.x += dx
        node.y += dy
    for child in state.subgraph_children(subgraph_id):
        translate_subgraph(state, child.id, dx, dy)


def _relayout_subgraph(
    state: FlowchartState,
    subgraph_id: str,
    direction: Direction,
    layers: dict[str, int],
    slot: tuple[float, float],
) -> None:
    members = state.subgraph_members(subgraph_id, recursive=True)
    if not members:
        return
    anchor_x, anchor_y = _slot_origin(members, slot)
    base = min(layers[n.id] for n in members)
    local = {n.id: layers[n.id] - base for n in members}
    place_block(state, members, local, direction, slot)
    origin_x, origin_y = _slot_origin(members, slot)
    translate_subgraph(state, subgraph_id, anchor_x - origin_x, anchor_y - origin_y)
    logger.debug("subgraph %r re-laid out %s at (%.1f, %.1f)", subgraph_id, direction.to_str(), anchor_x, anchor_y)


def _apply_direction_overrides(
    state: FlowchartState,
    parent_id: str | None,
    inherited: Direction,
    layers: dict[str, int],
    slot: tuple[float, float],
) -> None:
    for sg in state.subgraph_children(parent_id):
        effective = sg.direction if sg.direction is not None else inherited
        if effective is not inherited:
            _relayout_subgraph(state, sg.id, effective, layers, slot)
        _apply_direction_overrides(state, sg.id, effective, layers, slot)


def position_nodes(state: FlowchartState, assignment: LayerAssignment) -> None:
    slot = slot_size(state)
    for node in state.nodes:
        node.layer = assignment.layers[node.id]
    place_block(state, state.nodes, assignment.layers, state.direction, slot)
    _apply_direction_overrides(state, None, state.direction, assignment.layers, slot)


# ─── Edge Routing ────────────────────────────────────────────────────────────


def route_edges(state: FlowchartState) -> int:
    """Straight centre-to-centre paths. Returns the number of routed edges."""
    index = {node.id: node for node in state.nodes}
    routed = 0
    for edge in state.edges:
        src = index.get(edge.from_id)
        dst = index.get(edge.to_id)
        if src is None or dst is None:
            edge.path = []
            edge.label_x = None
            edge.label_y = None
            continue
        start: Point = src.center
        end: Point = dst.center
        edge.path = [start, end]
        edge.label_x = (start[0] + end[0]) / 2
        edge.label_y = (start[1] + end[1]) / 2
        routed += 1
    return routed


# ─── Subgraph Bounds ─────────────────────────────────────────────────────────


def compute_subgraph_bounds(state: FlowchartState) -> None:
    """Bound each subgraph around its nodes and bounded children, deepest first."""
    pad = state.subgraph_padding
    deepest_first = sorted(state.subgraphs, key=lambda sg: -state.subgraph_depth(sg.id))
    for sg in deepest_first:
        rects = [(n.x, n.y, n.x + n.width, n.y + n.height) for n in state.subgraph_members(sg.id)]
        rects.extend(
            (c.x, c.y, c.x + c.width, c.y + c.height) for c in state.subgraph_children(sg.id) if c.has_bounds
        )
        if not rects:
            sg.x = sg.y = sg.width = sg.height = 0.0
            sg.has_bounds = False
            continue
        min_x = min(r[0] for r in rects) - pad
        min_y = min(r[1] for r in rects) - pad - TITLE_BAR_HEIGHT
        max_x = max(r[2] for r in rects) + pad
        max_y = max(r[3] for r in rects) + pad
        sg.x = min_x
        sg.y = min_y
        sg.width = max_x - min_x
        sg.height = max_y - min_y
        sg.has_bounds = True


def shift_into_view(state: FlowchartState) -> tuple[float, float]:
    """Move all geometry right/down so no subgraph box starts before the origin."""
    bounded = [sg for sg in state.subgraphs if sg.has_bounds]
    if not bounded:
        return (0.0, 0.0)
    dx = max(0.0, -min(sg.x for sg in bounded))
    dy = max(0.0, -min(sg.y for sg in bounded))
    if dx == 0.0 and dy == 0.0:
        return (0.0, 0.0)

    for node in state.nodes:
        node.x += dx
        node.y += dy
    for edge in state.edges:
        edge.path = [(x + dx, y + dy) for x, y in edge.path]
        if edge.label_x is not None and edge.label_y is not None:
            edge.label_x += dx
            edge.label_y += dy
    for sg in bounded:
        sg.x += dx
        sg.y += dy
    return (dx, dy)
