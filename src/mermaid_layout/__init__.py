"""mermaid-layout: Mermaid flowchart syntax to positioned 2D graph geometry."""

from mermaid_layout.config import LayoutConfig, parse_direction
from mermaid_layout.export import from_document, from_json, to_document, to_json
from mermaid_layout.ir.graph import EdgeData, FlowchartState, NodeData, SubgraphData
from mermaid_layout.layout import FontMetrics, HeuristicMetrics, compute_layout
from mermaid_layout.parsers import is_mermaid, parse
from mermaid_layout.types import Direction, EdgeType, Marker, NodeShape


def layout_dsl(
    src: str,
    width: float | None = None,
    height: float | None = None,
    direction: str | None = None,
    metrics: FontMetrics | None = None,
    config: LayoutConfig | None = None,
) -> FlowchartState | None:
    """Parse a Mermaid flowchart string and lay it out.

    Args:
        src: Mermaid DSL source string.
        width: Available viewport width; None takes it from config (default 800).
        height: Available viewport height; None takes it from config (default 600).
        direction: Override graph direction ('LR', 'RL', 'TD', 'TB', 'BT'); None keeps parsed value.
        metrics: Font metrics used to size labels; None uses the character-count heuristic.
        config: Spacing/font knobs and viewport defaults.

    Returns:
        The laid-out FlowchartState, or None if the text has no flowchart/graph header.

    Raises:
        ValueError: If direction is unknown.
    """
    state = parse(src)
    if state is None:
        return None
    cfg = config if config is not None else LayoutConfig()
    cfg.apply(state)
    if direction is not None:
        state.set_direction(parse_direction(direction))
    compute_layout(
        state,
        width if width is not None else cfg.width,
        height if height is not None else cfg.height,
        metrics,
    )
    return state


def dsl_to_json(
    src: str,
    width: float | None = None,
    height: float | None = None,
    direction: str | None = None,
    indent: int | None = 2,
) -> str | None:
    """Parse, lay out and serialise in one step. None if the header is missing."""
    state = layout_dsl(src, width, height, direction)
    if state is None:
        return None
    return to_json(state, indent=indent)


__all__ = [
    "Direction",
    "EdgeData",
    "EdgeType",
    "FlowchartState",
    "FontMetrics",
    "HeuristicMetrics",
    "LayoutConfig",
    "Marker",
    "NodeData",
    "NodeShape",
    "SubgraphData",
    "compute_layout",
    "dsl_to_json",
    "from_document",
    "from_json",
    "is_mermaid",
    "layout_dsl",
    "parse",
    "to_document",
    "to_json",
]
