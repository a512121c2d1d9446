"""Intermediate representation: parse tree (AST) and the flat graph model."""

from mermaid_layout.ir.ast import Edge, Graph, Node, Subgraph
from mermaid_layout.ir.graph import EdgeData, FlowchartState, NodeData, SubgraphData

__all__ = [
    "Edge",
    "EdgeData",
    "FlowchartState",
    "Graph",
    "Node",
    "NodeData",
    "Subgraph",
    "SubgraphData",
]
