"""Layout types shared across the layout phases."""

from __future__ import annotations

from typing import Protocol

Point = tuple[float, float]

# Geometry constants

MIN_NODE_WIDTH: float = 40.0
MIN_NODE_HEIGHT: float = 24.0
NODE_PADDING_X: float = 32.0
NODE_PADDING_Y: float = 20.0
EMPTY_LABEL_WIDTH: float = 50.0

CHAR_WIDTH_FACTOR: float = 0.6
LINE_HEIGHT_FACTOR: float = 1.2

TITLE_BAR_HEIGHT: float = 30.0
OUTER_PADDING: float = 20.0
MIN_SCALE: float = 0.6
EMPTY_CONTENT_SIZE: float = 100.0


class FontMetrics(Protocol):
    """Text measurement capability handed to the sizing phase."""

    def text_width(self, text: str, font_size: float) -> float:
        """Width of a single line of text."""
        ...

    def font_height(self, font_size: float) -> float:
        """Height of one line of text."""
        ...


class HeuristicMetrics:
    """Fallback metrics: fixed advance per character, fixed line height."""

    def text_width(self, text: str, font_size: float) -> float:
        return len(text) * font_size * CHAR_WIDTH_FACTOR

    def font_height(self, font_size: float) -> float:
        return font_size * LINE_HEIGHT_FACTOR
