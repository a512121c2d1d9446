"""AST data structures for Mermaid flowchart syntax.

The parser builds this scoped tree: nodes live in the graph or in the
subgraph that was open when they were first referenced, subgraphs nest, and
edges always hang off the root graph. ``FlowchartState.from_ast`` flattens
it into the registries the layout engine works on.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from mermaid_layout.types import Direction, EdgeType, Marker, NodeShape

DEFAULT_FILL = 0xFFFFFFFF
DEFAULT_STROKE = 0x000000FF
DEFAULT_STROKE_WIDTH = 1.0


@dataclass
class Node:
    id: str
    label: str
    shape: NodeShape = field(default_factory=NodeShape.default)
    explicit: bool = True
    fill_color: int = DEFAULT_FILL
    stroke_color: int = DEFAULT_STROKE
    stroke_width: float = DEFAULT_STROKE_WIDTH

    @classmethod
    def new(cls, id: str, label: str, shape: NodeShape) -> Node:
        return cls(id=id, label=label, shape=shape)

    @classmethod
    def bare(cls, id: str) -> Node:
        """Create an implicit node (id = label, default Rectangle shape)."""
        return cls(id=id, label=id, shape=NodeShape.Rectangle, explicit=False)

    def promote(self, label: str, shape: NodeShape) -> None:
        """Turn an implicit node into an explicit shape definition in place."""
        self.label = label
        self.shape = shape
        self.explicit = True


@dataclass
class Edge:
    from_id: str
    to_id: str
    edge_type: EdgeType
    label: str | None = None
    start_marker: Marker = Marker.None_
    end_marker: Marker = Marker.Arrow

    @classmethod
    def new(cls, from_id: str, to_id: str, edge_type: EdgeType) -> Edge:
        return cls(from_id=from_id, to_id=to_id, edge_type=edge_type)


@dataclass
class Subgraph:
    id: str
    title: str
    nodes: list[Node] = field(default_factory=list)
    subgraphs: list[Subgraph] = field(default_factory=list)
    direction: Direction | None = None
    background_color: int | None = None
    border_color: int | None = None

    @classmethod
    def new(cls, id: str, title: str | None = None) -> Subgraph:
        return cls(id=id, title=title if title is not None else id)


@dataclass
class Graph:
    direction: Direction = field(default_factory=Direction.default)
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    subgraphs: list[Subgraph] = field(default_factory=list)

    @classmethod
    def new(cls) -> Graph:
        return cls()

    def iter_nodes(self) -> Iterator[Node]:
        """Every node in the tree, root scope first, then subgraphs depth first."""
        yield from self.nodes
        for sg in self.subgraphs:
            yield from _iter_subgraph_nodes(sg)

    def iter_subgraphs(self) -> Iterator[Subgraph]:
        for sg in self.subgraphs:
            yield from _iter_subgraph_tree(sg)

    def find_node(self, node_id: str) -> Node | None:
        for node in self.iter_nodes():
            if node.id == node_id:
                return node
        return None

    def has_id(self, item_id: str) -> bool:
        """True if a node or a subgraph anywhere in the tree already uses this id."""
        if self.find_node(item_id) is not None:
            return True
        return any(sg.id == item_id for sg in self.iter_subgraphs())


def _iter_subgraph_nodes(sg: Subgraph) -> Iterator[Node]:
    yield from sg.nodes
    for nested in sg.subgraphs:
        yield from _iter_subgraph_nodes(nested)


def _iter_subgraph_tree(sg: Subgraph) -> Iterator[Subgraph]:
    yield sg
    for nested in sg.subgraphs:
        yield from _iter_subgraph_tree(nested)
