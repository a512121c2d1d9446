"""Graph model: the flat node/edge/subgraph registries of one flowchart.

``FlowchartState`` owns every record of a diagram. The parser's scoped AST
is flattened into it by ``from_ast``; the layout engine then writes geometry
into the records in place. Records refer to each other by id only, so no
reference is ever invalidated by a registry growing.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import networkx as nx

from mermaid_layout.ir import ast
from mermaid_layout.types import Direction, EdgeType, Marker, NodeShape

DEFAULT_NODE_SPACING = 20.0
DEFAULT_RANK_SPACING = 40.0
DEFAULT_SUBGRAPH_PADDING = 40.0
DEFAULT_FONT_SIZE = 14.0

DEFAULT_SUBGRAPH_BACKGROUND = 0xF0F0F0FF
DEFAULT_SUBGRAPH_BORDER = 0x000000FF


@dataclass
class NodeData:
    id: str
    label: str
    shape: NodeShape = NodeShape.Rectangle
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    fill_color: int = ast.DEFAULT_FILL
    stroke_color: int = ast.DEFAULT_STROKE
    stroke_width: float = ast.DEFAULT_STROKE_WIDTH
    subgraph_id: str | None = None
    layer: int = -1

    @property
    def center(self) -> tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)


@dataclass
class EdgeData:
    from_id: str
    to_id: str
    edge_type: EdgeType = EdgeType.Arrow
    label: str | None = None
    start_marker: Marker = Marker.None_
    end_marker: Marker = Marker.Arrow
    path: list[tuple[float, float]] = field(default_factory=list)
    label_x: float | None = None
    label_y: float | None = None

    @property
    def is_routed(self) -> bool:
        return len(self.path) >= 2


@dataclass
class SubgraphData:
    id: str
    title: str
    direction: Direction | None = None
    parent_id: str | None = None
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    has_bounds: bool = False
    background_color: int = DEFAULT_SUBGRAPH_BACKGROUND
    border_color: int = DEFAULT_SUBGRAPH_BORDER


def create_node(node_id: str, shape: NodeShape = NodeShape.Rectangle, label: str | None = None) -> NodeData:
    return NodeData(id=node_id, label=label if label is not None else node_id, shape=shape)


def create_edge(from_id: str, to_id: str, edge_type: EdgeType = EdgeType.Arrow) -> EdgeData:
    return EdgeData(from_id=from_id, to_id=to_id, edge_type=edge_type)


def create_subgraph(subgraph_id: str, title: str | None = None) -> SubgraphData:
    return SubgraphData(id=subgraph_id, title=title if title is not None else subgraph_id)


class FlowchartState:
    """Root aggregate of one flowchart: registries, layout knobs and layout cache."""

    def __init__(self, direction: Direction = Direction.TD) -> None:
        self.direction = direction
        self.nodes: list[NodeData] = []
        self.edges: list[EdgeData] = []
        self.subgraphs: list[SubgraphData] = []

        self.node_spacing = DEFAULT_NODE_SPACING
        self.rank_spacing = DEFAULT_RANK_SPACING
        self.subgraph_padding = DEFAULT_SUBGRAPH_PADDING
        self.font_size = DEFAULT_FONT_SIZE

        self.layout_computed = False
        self.computed_width = 0.0
        self.computed_height = 0.0
        self.natural_width = 0.0
        self.natural_height = 0.0
        self.content_width = 0.0
        self.content_height = 0.0
        self.content_offset_x = 0.0
        self.content_offset_y = 0.0
        self.scale = 1.0

    @classmethod
    def from_ast(cls, ast_graph: ast.Graph) -> FlowchartState:
        """Register every node, subgraph and edge reachable in the parse tree."""
        state = cls(direction=ast_graph.direction)
        for node in ast_graph.nodes:
            state.register_node(_node_from_ast(node, subgraph_id=None))
        for sg in ast_graph.subgraphs:
            _collect_subgraph(state, sg, parent_id=None)
        for edge in ast_graph.edges:
            state.register_edge(
                EdgeData(
                    from_id=edge.from_id,
                    to_id=edge.to_id,
                    edge_type=edge.edge_type,
                    label=edge.label,
                    start_marker=edge.start_marker,
                    end_marker=edge.end_marker,
                )
            )
        return state

    # ─── Registration ────────────────────────────────────────────────────

    def register_node(self, node: NodeData) -> None:
        if self.find_node(node.id) is not None:
            return
        self.nodes.append(node)
        self.invalidate()

    def register_edge(self, edge: EdgeData) -> None:
        self.edges.append(edge)
        self.invalidate()

    def register_subgraph(self, subgraph: SubgraphData) -> None:
        if self.find_subgraph(subgraph.id) is not None:
            return
        self.subgraphs.append(subgraph)
        self.invalidate()

    def invalidate(self) -> None:
        self.layout_computed = False

    # ─── Lookup ──────────────────────────────────────────────────────────

    def find_node(self, node_id: str) -> NodeData | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def find_subgraph(self, subgraph_id: str) -> SubgraphData | None:
        for sg in self.subgraphs:
            if sg.id == subgraph_id:
                return sg
        return None

    def subgraph_children(self, subgraph_id: str | None) -> list[SubgraphData]:
        """Direct child subgraphs; ``None`` selects the top-level subgraphs."""
        return [sg for sg in self.subgraphs if sg.parent_id == subgraph_id]

    def subgraph_members(self, subgraph_id: str, recursive: bool = False) -> list[NodeData]:
        if not recursive:
            return [n for n in self.nodes if n.subgraph_id == subgraph_id]
        ids = {subgraph_id}
        ids.update(sg.id for sg in self.subgraph_descendants(subgraph_id))
        return [n for n in self.nodes if n.subgraph_id in ids]

    def subgraph_descendants(self, subgraph_id: str) -> list[SubgraphData]:
        result: list[SubgraphData] = []
        for child in self.subgraph_children(subgraph_id):
            result.append(child)
            result.extend(self.subgraph_descendants(child.id))
        return result

    def subgraph_depth(self, subgraph_id: str) -> int:
        depth = 0
        sg = self.find_subgraph(subgraph_id)
        seen: set[str] = set()
        while sg is not None and sg.parent_id is not None and sg.id not in seen:
            seen.add(sg.id)
            depth += 1
            sg = self.find_subgraph(sg.parent_id)
        return depth

    # ─── Mutation ────────────────────────────────────────────────────────

    def set_direction(self, direction: Direction) -> None:
        self.direction = direction
        self.invalidate()

    def set_node_style(
        self,
        node_id: str,
        fill: int | None = None,
        stroke: int | None = None,
        stroke_width: float | None = None,
    ) -> bool:
        node = self.find_node(node_id)
        if node is None:
            return False
        if fill is not None:
            node.fill_color = fill
        if stroke is not None:
            node.stroke_color = stroke
        if stroke_width is not None:
            node.stroke_width = stroke_width
        self.invalidate()
        return True

    # ─── Topology ────────────────────────────────────────────────────────

    def topology(self) -> nx.MultiDiGraph:
        """Multigraph of all nodes and of every edge whose endpoints resolve."""
        graph: nx.MultiDiGraph = nx.MultiDiGraph()
        for node in self.nodes:
            graph.add_node(node.id)
        for index, edge in enumerate(self.edges):
            if edge.from_id in graph and edge.to_id in graph:
                graph.add_edge(edge.from_id, edge.to_id, key=index)
        return graph

    def node_count(self) -> int:
        return len(self.nodes)

    def edge_count(self) -> int:
        return len(self.edges)


def _node_from_ast(node: ast.Node, subgraph_id: str | None) -> NodeData:
    return NodeData(
        id=node.id,
        label=node.label,
        shape=node.shape,
        fill_color=node.fill_color,
        stroke_color=node.stroke_color,
        stroke_width=node.stroke_width,
        subgraph_id=subgraph_id,
    )


def _collect_subgraph(state: FlowchartState, sg: ast.Subgraph, parent_id: str | None) -> None:
    data = SubgraphData(id=sg.id, title=sg.title, direction=sg.direction, parent_id=parent_id)
    if sg.background_color is not None:
        data.background_color = sg.background_color
    if sg.border_color is not None:
        data.border_color = sg.border_color
    state.register_subgraph(data)
    for node in sg.nodes:
        state.register_node(_node_from_ast(node, subgraph_id=sg.id))
    for nested in sg.subgraphs:
        _collect_subgraph(state, nested, parent_id=sg.id)
