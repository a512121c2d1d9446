"""Base parser protocol."""

from __future__ import annotations

from typing import Protocol

from mermaid_layout.ir.ast import Graph


class Parser(Protocol):
    """Protocol that all diagram parsers must implement."""

    def parse(self, src: str) -> Graph | None:
        """Parse source text into an AST Graph, or None if the header is missing."""
        ...
