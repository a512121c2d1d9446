"""Interchange document: a laid-out FlowchartState as plain dicts / JSON.

Every record attribute survives ``from_document(to_document(state))``. Enums
are written with their ``to_str`` spelling, colours as packed RGBA integers,
paths as lists of ``[x, y]`` pairs.
"""

from __future__ import annotations

import json
from typing import Any

from mermaid_layout.ir.graph import EdgeData, FlowchartState, NodeData, SubgraphData
from mermaid_layout.types import Direction, EdgeType, Marker, NodeShape

FORMAT_VERSION = 1

_LAYOUT_FIELDS = (
    "node_spacing",
    "rank_spacing",
    "subgraph_padding",
    "font_size",
    "computed_width",
    "computed_height",
    "natural_width",
    "natural_height",
    "content_width",
    "content_height",
    "content_offset_x",
    "content_offset_y",
    "scale",
)


# ─── Records → dicts ─────────────────────────────────────────────────────────


def _node_to_dict(node: NodeData) -> dict[str, Any]:
    return {
        "id": node.id,
        "label": node.label,
        "shape": node.shape.to_str(),
        "x": node.x,
        "y": node.y,
        "width": node.width,
        "height": node.height,
        "fill_color": node.fill_color,
        "stroke_color": node.stroke_color,
        "stroke_width": node.stroke_width,
        "subgraph": node.subgraph_id,
        "layer": node.layer,
    }


def _edge_to_dict(edge: EdgeData) -> dict[str, Any]:
    return {
        "from": edge.from_id,
        "to": edge.to_id,
        "type": edge.edge_type.to_str(),
        "label": edge.label,
        "start_marker": edge.start_marker.to_str(),
        "end_marker": edge.end_marker.to_str(),
        "path": [[x, y] for x, y in edge.path],
        "label_x": edge.label_x,
        "label_y": edge.label_y,
    }


def _subgraph_to_dict(sg: SubgraphData) -> dict[str, Any]:
    return {
        "id": sg.id,
        "title": sg.title,
        "direction": sg.direction.to_str() if sg.direction is not None else None,
        "parent": sg.parent_id,
        "x": sg.x,
        "y": sg.y,
        "width": sg.width,
        "height": sg.height,
        "has_bounds": sg.has_bounds,
        "background_color": sg.background_color,
        "border_color": sg.border_color,
    }


def to_document(state: FlowchartState) -> dict[str, Any]:
    """Convert a flowchart (laid out or not) into a JSON-compatible dict."""
    layout: dict[str, Any] = {"computed": state.layout_computed}
    for name in _LAYOUT_FIELDS:
        layout[name] = getattr(state, name)
    return {
        "version": FORMAT_VERSION,
        "direction": state.direction.to_str(),
        "nodes": [_node_to_dict(n) for n in state.nodes],
        "edges": [_edge_to_dict(e) for e in state.edges],
        "subgraphs": [_subgraph_to_dict(sg) for sg in state.subgraphs],
        "layout": layout,
    }


# ─── dicts → records ─────────────────────────────────────────────────────────


def _node_from_dict(data: dict[str, Any]) -> NodeData:
    return NodeData(
        id=data["id"],
        label=data.get("label", data["id"]),
        shape=NodeShape.from_str(data.get("shape")),
        x=float(data.get("x", 0.0)),
        y=float(data.get("y", 0.0)),
        width=float(data.get("width", 0.0)),
        height=float(data.get("height", 0.0)),
        fill_color=int(data.get("fill_color", NodeData.fill_color)),
        stroke_color=int(data.get("stroke_color", NodeData.stroke_color)),
        stroke_width=float(data.get("stroke_width", NodeData.stroke_width)),
        subgraph_id=data.get("subgraph"),
        layer=int(data.get("layer", -1)),
    )


def _edge_from_dict(data: dict[str, Any]) -> EdgeData:
    path = []
    for point in data.get("path", []):
        if len(point) != 2:
            raise ValueError(f"edge path point must have 2 coordinates, got {point!r}")
        path.append((float(point[0]), float(point[1])))
    label_x = data.get("label_x")
    label_y = data.get("label_y")
    return EdgeData(
        from_id=data["from"],
        to_id=data["to"],
        edge_type=EdgeType.from_str(data.get("type")),
        label=data.get("label"),
        start_marker=Marker.from_str(data.get("start_marker", "none")),
        end_marker=Marker.from_str(data.get("end_marker", "arrow")),
        path=path,
        label_x=float(label_x) if label_x is not None else None,
        label_y=float(label_y) if label_y is not None else None,
    )


def _subgraph_from_dict(data: dict[str, Any]) -> SubgraphData:
    direction = data.get("direction")
    return SubgraphData(
        id=data["id"],
        title=data.get("title", data["id"]),
        direction=Direction.from_str(direction) if direction is not None else None,
        parent_id=data.get("parent"),
        x=float(data.get("x", 0.0)),
        y=float(data.get("y", 0.0)),
        width=float(data.get("width", 0.0)),
        height=float(data.get("height", 0.0)),
        has_bounds=bool(data.get("has_bounds", False)),
        background_color=int(data.get("background_color", SubgraphData.background_color)),
        border_color=int(data.get("border_color", SubgraphData.border_color)),
    )


def from_document(document: dict[str, Any]) -> FlowchartState:
    """Rebuild a FlowchartState from ``to_document`` output.

    Raises:
        KeyError: A record lacks its id / endpoints.
        ValueError: The document is not a dict or a value has the wrong shape.
    """
    if not isinstance(document, dict):
        raise ValueError(f"expected a document object, got {type(document).__name__}")
    version = document.get("version", FORMAT_VERSION)
    if version != FORMAT_VERSION:
        raise ValueError(f"unsupported document version {version!r}")

    state = FlowchartState(direction=Direction.from_str(document.get("direction")))
    for item in document.get("nodes", []):
        state.register_node(_node_from_dict(item))
    for item in document.get("edges", []):
        state.register_edge(_edge_from_dict(item))
    for item in document.get("subgraphs", []):
        state.register_subgraph(_subgraph_from_dict(item))

    layout = document.get("layout", {})
    for name in _LAYOUT_FIELDS:
        if name in layout:
            setattr(state, name, float(layout[name]))
    state.layout_computed = bool(layout.get("computed", False))
    return state


def to_json(state: FlowchartState, indent: int | None = 2) -> str:
    return json.dumps(to_document(state), indent=indent)


def from_json(text: str) -> FlowchartState:
    return from_document(json.loads(text))
