"""Parser registry — detect the diagram type and dispatch to the right parser."""

from __future__ import annotations

import logging

from mermaid_layout.ir.ast import Graph
from mermaid_layout.ir.graph import FlowchartState
from mermaid_layout.parsers.base import Parser
from mermaid_layout.parsers.flowchart import FlowchartParser

logger = logging.getLogger(__name__)

_HEADERS = ("flowchart", "graph")


def detect_type(src: str) -> str | None:
    """Detect the diagram type from its first meaningful line. None if unsupported."""
    for line in src.split("\n"):
        line = line.strip()
        if not line or line.startswith("%%"):
            continue
        lower = line.lower()
        for header in _HEADERS:
            if lower.startswith(header):
                rest = lower[len(header) :]
                if not rest or not (rest[0].isalnum() or rest[0] == "_"):
                    return "flowchart"
        return None
    return None


def is_mermaid(src: str) -> bool:
    """True if the text starts with a flowchart/graph header."""
    return detect_type(src) is not None


_PARSERS: dict[str, type[Parser]] = {
    "flowchart": FlowchartParser,
}


def parse_ast(src: str) -> Graph | None:
    """Parse to the scoped AST. None if the header is missing."""
    diagram_type = detect_type(src)
    parser_cls = _PARSERS.get(diagram_type) if diagram_type else None
    if parser_cls is None:
        logger.debug("no flowchart/graph header found")
        return None
    return parser_cls().parse(src)


def parse(src: str) -> FlowchartState | None:
    """Parse Mermaid text into a finalized graph model. None if the header is missing."""
    ast_graph = parse_ast(src)
    if ast_graph is None:
        return None
    state = FlowchartState.from_ast(ast_graph)
    logger.debug(
        "parsed %d nodes, %d edges, %d subgraphs",
        state.node_count(),
        state.edge_count(),
        len(state.subgraphs),
    )
    return state


__all__ = ["FlowchartParser", "detect_type", "is_mermaid", "parse", "parse_ast"]
