"""Shared type definitions for mermaid-layout.

Enums used across the parser, the graph model, the layout engine and the
interchange document.
"""

from __future__ import annotations

from enum import Enum, auto


class Direction(Enum):
    TD = auto()
    LR = auto()
    BT = auto()
    RL = auto()

    @classmethod
    def default(cls) -> Direction:
        return cls.TD

    @classmethod
    def from_str(cls, value: str | None) -> Direction:
        """Parse TB/TD/LR/BT/RL case-insensitively; anything else is TD."""
        if not value:
            return cls.TD
        key = value.strip().upper()
        if key == "TB":
            return cls.TD
        return cls.__members__.get(key, cls.TD)

    def to_str(self) -> str:
        return "TB" if self is Direction.TD else self.name

    @property
    def is_horizontal(self) -> bool:
        return self in (Direction.LR, Direction.RL)

    @property
    def is_reversed(self) -> bool:
        return self in (Direction.BT, Direction.RL)


class NodeShape(Enum):
    Rectangle = auto()  # id[Label]
    Rounded = auto()  # id(Label)
    Stadium = auto()  # id([Label])
    Diamond = auto()  # id{Label}
    Circle = auto()  # id((Label))
    Hexagon = auto()  # id{{Label}}
    Parallelogram = auto()  # id[/Label/]
    Cylinder = auto()  # id[(Label)]
    Subroutine = auto()  # id[[Label]]
    Asymmetric = auto()  # id>Label]
    Trapezoid = auto()  # id[/Label\]

    @classmethod
    def default(cls) -> NodeShape:
        return cls.Rectangle

    @classmethod
    def from_str(cls, value: str | None) -> NodeShape:
        return _lookup(cls, value, cls.Rectangle)

    def to_str(self) -> str:
        return self.name.lower()

    @property
    def is_square(self) -> bool:
        return self in (NodeShape.Circle, NodeShape.Diamond)


class EdgeType(Enum):
    Arrow = auto()  # -->
    Open = auto()  # ---
    Bidirectional = auto()  # <-->
    Dotted = auto()  # -.->
    Thick = auto()  # ==>

    @classmethod
    def from_str(cls, value: str | None) -> EdgeType:
        return _lookup(cls, value, cls.Arrow)

    def to_str(self) -> str:
        return self.name.lower()


class Marker(Enum):
    None_ = auto()
    Arrow = auto()  # >
    Circle = auto()  # o
    Cross = auto()  # x

    @classmethod
    def from_str(cls, value: str | None) -> Marker:
        if value and value.strip().lower() == "none":
            return cls.None_
        return _lookup(cls, value, cls.None_)

    def to_str(self) -> str:
        return "none" if self is Marker.None_ else self.name.lower()


def _lookup(enum_cls, value, fallback):
    if not value:
        return fallback
    key = value.strip().lower()
    for member in enum_cls:
        if member.name.lower() == key:
            return member
    return fallback
