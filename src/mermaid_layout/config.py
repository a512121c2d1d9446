"""Centralized configuration for mermaid-layout."""

from __future__ import annotations

from dataclasses import dataclass

from mermaid_layout.ir.graph import (
    DEFAULT_FONT_SIZE,
    DEFAULT_NODE_SPACING,
    DEFAULT_RANK_SPACING,
    DEFAULT_SUBGRAPH_PADDING,
    FlowchartState,
)
from mermaid_layout.types import Direction

_DIRECTION_MAP: dict[str, Direction] = {
    "LR": Direction.LR,
    "RL": Direction.RL,
    "TD": Direction.TD,
    "TB": Direction.TD,
    "BT": Direction.BT,
}


def parse_direction(direction: str) -> Direction:
    """Strict direction lookup for user-supplied overrides."""
    key = direction.strip().upper()
    if key not in _DIRECTION_MAP:
        raise ValueError(f"Unknown direction '{direction}'; use LR, RL, TD, TB, or BT")
    return _DIRECTION_MAP[key]


@dataclass
class LayoutConfig:
    """Configuration for the layout pipeline."""

    width: float = 800.0
    height: float = 600.0
    direction_override: str | None = None
    node_spacing: float = DEFAULT_NODE_SPACING
    rank_spacing: float = DEFAULT_RANK_SPACING
    subgraph_padding: float = DEFAULT_SUBGRAPH_PADDING
    font_size: float = DEFAULT_FONT_SIZE

    def apply(self, state: FlowchartState) -> None:
        """Copy the knobs onto ``state`` and invalidate its layout.

        Raises:
            ValueError: If direction_override is not a known direction.
        """
        if self.direction_override is not None:
            state.set_direction(parse_direction(self.direction_override))
        state.node_spacing = self.node_spacing
        state.rank_spacing = self.rank_spacing
        state.subgraph_padding = self.subgraph_padding
        state.font_size = self.font_size
        state.invalidate()
