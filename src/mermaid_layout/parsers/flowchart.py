"""Flowchart parser — hand-rolled recursive descent.

Parses Mermaid flowchart/graph DSL into the AST types from ir.ast. The scan
is line oriented: every logical line is dispatched on its leading keyword or
identifier, and whatever a statement leaves unconsumed on its line is
dropped. Malformed lines never abort the parse; only a missing
``flowchart``/``graph`` header does.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from mermaid_layout.ir.ast import Edge, Graph, Node, Subgraph
from mermaid_layout.types import Direction, EdgeType, Marker, NodeShape

logger = logging.getLogger(__name__)

# ─── Tokens ──────────────────────────────────────────────────────────────────

_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_DIRECTION_RE = re.compile(r"TB|TD|LR|RL|BT", re.IGNORECASE)
_LABEL_TEXT_RE = re.compile(r"[^|\n]*")
_BARE_TITLE_RE = re.compile(r"[^\n%]+")
_STROKE_WIDTH_RE = re.compile(r"\d+(?:\.\d*)?|\.\d+")

_BR_TAG_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_HTML_TAG_RE = re.compile(r"<[^>]*(?:>|$)")

_SHAPE_OPENERS = frozenset("[({>")
_EDGE_OPENERS = frozenset("-=<")
_IGNORED_KEYWORDS = ("classDef", "class", "linkStyle")

DEFAULT_STYLE_COLOR = 0xE0E0E0FF
DEFAULT_STYLE_STROKE_WIDTH = 2.0

_NO_MARKERS = (Marker.None_, Marker.None_)
_END_ARROW = (Marker.None_, Marker.Arrow)

# Longest match first.
_EDGE_OPERATORS: list[tuple[str, EdgeType, tuple[Marker, Marker]]] = [
    ("<-->", EdgeType.Bidirectional, (Marker.Arrow, Marker.Arrow)),
    ("-..->", EdgeType.Dotted, _END_ARROW),
    ("-.->", EdgeType.Dotted, _END_ARROW),
    ("-.-", EdgeType.Dotted, _NO_MARKERS),
    ("==>", EdgeType.Thick, _END_ARROW),
    ("===", EdgeType.Thick, _NO_MARKERS),
    ("--->", EdgeType.Arrow, _END_ARROW),
    ("-->", EdgeType.Arrow, _END_ARROW),
    ("---", EdgeType.Open, _NO_MARKERS),
]

_MARKER_OPERATORS: list[tuple[str, Marker]] = [
    ("--o", Marker.Circle),
    ("--x", Marker.Cross),
]

# "-- text -->" style operators: opener, then the closers that end the label.
_INLINE_LABEL_OPERATORS: list[tuple[str, list[tuple[str, EdgeType, tuple[Marker, Marker]]]]] = [
    ("--", [("-->", EdgeType.Arrow, _END_ARROW), ("---", EdgeType.Open, _NO_MARKERS)]),
    ("==", [("==>", EdgeType.Thick, _END_ARROW), ("===", EdgeType.Thick, _NO_MARKERS)]),
    ("-.", [(".->", EdgeType.Dotted, _END_ARROW), (".-", EdgeType.Dotted, _NO_MARKERS)]),
]


@dataclass
class _Connector:
    edge_type: EdgeType
    markers: tuple[Marker, Marker]
    label: str | None = None


# ─── Helpers ─────────────────────────────────────────────────────────────────


def normalize_label(text: str) -> str:
    """Turn <br> variants into newlines and strip every other inline tag."""
    text = _BR_TAG_RE.sub("\n", text)
    text = _HTML_TAG_RE.sub("", text)
    return "\n".join(line.strip() for line in text.split("\n"))


def parse_hex_color(text: str) -> int:
    """Parse #RGB, #RRGGBB or #RRGGBBAA into a packed RGBA integer."""
    value = text.strip()
    if not value.startswith("#"):
        return DEFAULT_STYLE_COLOR
    digits = value[1:]
    try:
        int(digits, 16)
    except ValueError:
        return DEFAULT_STYLE_COLOR
    if len(digits) == 3:
        r, g, b = (int(ch, 16) * 17 for ch in digits)
        a = 0xFF
    elif len(digits) == 6:
        r, g, b = (int(digits[i : i + 2], 16) for i in (0, 2, 4))
        a = 0xFF
    elif len(digits) == 8:
        r, g, b, a = (int(digits[i : i + 2], 16) for i in (0, 2, 4, 6))
    else:
        return DEFAULT_STYLE_COLOR
    return (r << 24) | (g << 16) | (b << 8) | a


def _is_ident_char(ch: str) -> bool:
    return bool(ch) and (ch.isalnum() or ch == "_")


# ─── Cursor ──────────────────────────────────────────────────────────────────


@dataclass
class _Cursor:
    """Stateful parser cursor over the input string."""

    src: str
    pos: int = 0
    graph: Graph = field(default_factory=Graph.new)
    stack: list[Subgraph] = field(default_factory=list)
    subgraph_count: int = 0

    # Low-level scanning

    def eof(self) -> bool:
        return self.pos >= len(self.src)

    def peek_char(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx < len(self.src):
            return self.src[idx]
        return ""

    def peek(self, s: str) -> bool:
        return self.src.startswith(s, self.pos)

    def consume(self, s: str) -> bool:
        if self.peek(s):
            self.pos += len(s)
            return True
        return False

    def consume_keyword(self, word: str) -> bool:
        """Consume ``word`` case-insensitively when it is not part of a longer identifier."""
        end = self.pos + len(word)
        if self.src[self.pos : end].lower() != word.lower():
            return False
        if _is_ident_char(self.peek_char(len(word))):
            return False
        self.pos = end
        return True

    def match_re(self, pattern: re.Pattern[str]) -> str | None:
        m = pattern.match(self.src, self.pos)
        if m:
            self.pos = m.end()
            return m.group(0)
        return None

    def skip_ws(self) -> None:
        while self.peek_char() in (" ", "\t") and not self.eof():
            self.pos += 1

    def skip_blank(self) -> None:
        """Skip whitespace, newlines and %% comments."""
        while not self.eof():
            ch = self.peek_char()
            if ch in (" ", "\t", "\r", "\n"):
                self.pos += 1
            elif self.peek("%%"):
                self.skip_line()
            else:
                break

    def skip_line(self) -> None:
        end = self.src.find("\n", self.pos)
        self.pos = len(self.src) if end < 0 else end

    def rest_of_line(self) -> str:
        start = self.pos
        self.skip_line()
        return self.src[start : self.pos]

    def line_no(self) -> int:
        return self.src.count("\n", 0, self.pos) + 1

    # Tokens

    def parse_identifier(self) -> str | None:
        self.skip_ws()
        return self.match_re(_IDENT_RE)

    def parse_direction_value(self) -> Direction | None:
        self.skip_ws()
        d = self.match_re(_DIRECTION_RE)
        if d is None:
            return None
        return Direction.from_str(d)

    def parse_quoted_string(self) -> str:
        assert self.src[self.pos] == '"'
        self.pos += 1
        buf: list[str] = []
        while self.pos < len(self.src):
            ch = self.src[self.pos]
            if ch == '"':
                self.pos += 1
                break
            if ch == "\\" and self.pos + 1 < len(self.src):
                nxt = self.src[self.pos + 1]
                if nxt == "n":
                    buf.append("\n")
                elif nxt == '"':
                    buf.append('"')
                elif nxt == "\\":
                    buf.append("\\")
                else:
                    buf.append(nxt)
                self.pos += 2
            else:
                buf.append(ch)
                self.pos += 1
        return "".join(buf)

    def parse_bracket_text(self, open_ch: str, close_ch: str) -> str:
        """Read text between a bracket pair, counting nested opening brackets."""
        if not self.consume(open_ch):
            return ""
        saved = self.pos
        self.skip_ws()
        if self.peek_char() == '"':
            text = self.parse_quoted_string()
            while not self.eof() and self.peek_char() not in (close_ch, "\n"):
                self.pos += 1
            self.consume(close_ch)
            return normalize_label(text)
        self.pos = saved

        start = self.pos
        depth = 1
        while not self.eof():
            ch = self.src[self.pos]
            if ch == "\n":
                break
            if ch == open_ch:
                depth += 1
            elif ch == close_ch:
                depth -= 1
                if depth == 0:
                    break
            self.pos += 1
        text = self.src[start : self.pos]
        self.consume(close_ch)
        return normalize_label(text.strip())

    def parse_lean_text(self) -> tuple[NodeShape, str]:
        """``[/text/]``, ``[/text\\]`` and their ``[\\...`` mirror forms.

        The label runs to the first ``]`` preceded by a slant, so slants
        inside the label (``[/a/b/]``) are kept.
        """
        self.pos += 1
        lead = self.src[self.pos]
        self.pos += 1
        start = self.pos
        end = self.src.find("\n", start)
        line = self.src[start : end if end >= 0 else len(self.src)]
        close = next(
            (i for i in range(1, len(line)) if line[i] == "]" and line[i - 1] in ("/", "\\")),
            line.find("]"),
        )
        if close < 0:
            close = len(line)
        trail = line[close - 1] if close > 0 and line[close - 1] in ("/", "\\") else None
        text = line[: close - 1] if trail else line[:close]
        self.pos = start + close
        self.consume("]")
        shape = NodeShape.Parallelogram if trail is None or trail == lead else NodeShape.Trapezoid
        return (shape, normalize_label(text.strip()))

    def parse_node_shape(self) -> tuple[NodeShape, str] | None:
        c = self.peek_char()
        c2 = self.peek_char(1)
        if c == "[":
            if c2 == "[":
                self.pos += 1
                label = self.parse_bracket_text("[", "]")
                self.consume("]")
                return (NodeShape.Subroutine, label)
            if c2 == "(":
                self.pos += 1
                label = self.parse_bracket_text("(", ")")
                self.consume("]")
                return (NodeShape.Cylinder, label)
            if c2 in ("/", "\\"):
                return self.parse_lean_text()
            return (NodeShape.Rectangle, self.parse_bracket_text("[", "]"))
        if c == "(":
            if c2 == "(":
                self.pos += 1
                label = self.parse_bracket_text("(", ")")
                self.consume(")")
                return (NodeShape.Circle, label)
            if c2 == "[":
                self.pos += 1
                label = self.parse_bracket_text("[", "]")
                self.consume(")")
                return (NodeShape.Stadium, label)
            return (NodeShape.Rounded, self.parse_bracket_text("(", ")"))
        if c == "{":
            if c2 == "{":
                self.pos += 1
                label = self.parse_bracket_text("{", "}")
                self.consume("}")
                return (NodeShape.Hexagon, label)
            return (NodeShape.Diamond, self.parse_bracket_text("{", "}"))
        if c == ">":
            self.pos += 1
            start = self.pos
            while not self.eof() and self.peek_char() not in ("]", "\n"):
                self.pos += 1
            text = self.src[start : self.pos]
            self.consume("]")
            return (NodeShape.Asymmetric, normalize_label(text.strip()))
        return None

    # Scope handling

    def current_scope(self) -> list[Node]:
        if self.stack:
            return self.stack[-1].nodes
        return self.graph.nodes

    def ensure_node(self, node_id: str) -> None:
        """Create an implicit node unless the id is already taken anywhere."""
        if not self.graph.has_id(node_id):
            self.current_scope().append(Node.bare(node_id))

    def define_node(self, node_id: str, shape: NodeShape, label: str) -> None:
        existing = self.graph.find_node(node_id)
        if existing is not None:
            if not existing.explicit:
                existing.promote(label, shape)
            return
        if self.graph.has_id(node_id):
            return
        self.current_scope().append(Node.new(node_id, label, shape))

    # Statements

    def parse_node_definition(self, node_id: str) -> None:
        result = self.parse_node_shape()
        if result is None:
            return
        shape, label = result
        self.define_node(node_id, shape, label or node_id)

    def parse_inline_label(
        self, closers: list[tuple[str, EdgeType, tuple[Marker, Marker]]]
    ) -> _Connector | None:
        self.skip_ws()
        start = self.pos
        while not self.eof() and self.peek_char() != "\n":
            for closer, etype, markers in closers:
                if self.peek(closer):
                    label = self.src[start : self.pos].strip()
                    if not label:
                        return None
                    self.pos += len(closer)
                    return _Connector(etype, markers, normalize_label(label))
            self.pos += 1
        return None

    def parse_edge_connector(self) -> _Connector | None:
        self.skip_ws()
        for token, etype, markers in _EDGE_OPERATORS:
            if self.consume(token):
                return _Connector(etype, markers)
        for token, end_marker in _MARKER_OPERATORS:
            if self.consume(token):
                return _Connector(EdgeType.Open, (Marker.None_, end_marker))
        saved = self.pos
        for opener, closers in _INLINE_LABEL_OPERATORS:
            if self.consume(opener):
                connector = self.parse_inline_label(closers)
                if connector is not None:
                    return connector
                self.pos = saved
                break
        return None

    def try_parse_edge_label(self) -> str | None:
        self.skip_ws()
        if not self.consume("|"):
            return None
        text = self.match_re(_LABEL_TEXT_RE)
        self.consume("|")
        return normalize_label((text or "").strip())

    def parse_edge_chain(self, from_id: str) -> None:
        """Parse ``--> B --> C ...`` after a source id, appending one edge per hop."""
        source = from_id
        while True:
            connector = self.parse_edge_connector()
            if connector is None:
                logger.debug("line %d: no edge operator after %r", self.line_no(), source)
                return
            label = connector.label
            pipe_label = self.try_parse_edge_label()
            if pipe_label is not None:
                label = pipe_label
            to_id = self.parse_identifier()
            if to_id is None:
                logger.debug("line %d: edge from %r has no target", self.line_no(), source)
                return

            self.ensure_node(to_id)
            edge = Edge.new(source, to_id, connector.edge_type)
            edge.label = label
            edge.start_marker, edge.end_marker = connector.markers
            self.graph.edges.append(edge)

            self.skip_ws()
            if self.peek_char() in _SHAPE_OPENERS:
                self.parse_node_definition(to_id)
                self.skip_ws()
            if self.peek_char() not in _EDGE_OPENERS:
                return
            source = to_id

    def parse_subgraph(self) -> None:
        sg_id = self.parse_identifier()
        self.skip_ws()
        title: str | None = None
        if self.peek_char() == "[":
            title = self.parse_bracket_text("[", "]")
        elif self.peek_char() == '"':
            title = normalize_label(self.parse_quoted_string())
        elif sg_id is not None:
            rest = self.match_re(_BARE_TITLE_RE)
            if rest and rest.strip():
                title = rest.strip()
        if sg_id is None:
            sg_id = title or f"subGraph{self.subgraph_count}"
        self.subgraph_count += 1

        sg = Subgraph.new(sg_id, title or None)
        if self.stack:
            self.stack[-1].subgraphs.append(sg)
        else:
            self.graph.subgraphs.append(sg)
        self.stack.append(sg)

    def parse_direction_stmt(self) -> None:
        direction = self.parse_direction_value()
        if direction is None:
            return
        if not self.stack:
            logger.debug("line %d: direction outside a subgraph ignored", self.line_no())
            return
        self.stack[-1].direction = direction

    def parse_style(self) -> None:
        item_id = self.parse_identifier()
        if item_id is None:
            return
        props = self.rest_of_line().split("%%", 1)[0]

        fill: int | None = None
        stroke: int | None = None
        stroke_width: float | None = None
        for prop in props.split(","):
            key, sep, value = prop.partition(":")
            if not sep:
                continue
            key = key.strip().lower()
            words = value.split()
            value = words[0] if words else ""
            if key == "fill":
                fill = parse_hex_color(value)
            elif key == "stroke":
                stroke = parse_hex_color(value)
            elif key == "stroke-width":
                m = _STROKE_WIDTH_RE.match(value)
                stroke_width = float(m.group(0)) if m else DEFAULT_STYLE_STROKE_WIDTH

        node = self.graph.find_node(item_id)
        if node is not None:
            if fill is not None:
                node.fill_color = fill
            if stroke is not None:
                node.stroke_color = stroke
            if stroke_width is not None:
                node.stroke_width = stroke_width
            return
        for sg in self.graph.iter_subgraphs():
            if sg.id == item_id:
                if fill is not None:
                    sg.background_color = fill
                if stroke is not None:
                    sg.border_color = stroke
                return
        logger.debug("line %d: style for unknown id %r ignored", self.line_no(), item_id)

    def parse_line(self) -> None:
        if self.consume_keyword("subgraph"):
            self.parse_subgraph()
            return
        if self.consume_keyword("end"):
            if self.stack:
                self.stack.pop()
            else:
                logger.debug("line %d: 'end' without an open subgraph", self.line_no())
            return
        if self.consume_keyword("direction"):
            self.parse_direction_stmt()
            return
        if self.consume_keyword("style"):
            self.parse_style()
            return
        for keyword in _IGNORED_KEYWORDS:
            if self.consume_keyword(keyword):
                logger.debug("line %d: '%s' statement ignored", self.line_no(), keyword)
                return

        node_id = self.parse_identifier()
        if node_id is None:
            logger.debug("line %d: skipping unparseable line", self.line_no())
            return

        self.skip_ws()
        c = self.peek_char()
        if c in _SHAPE_OPENERS:
            self.parse_node_definition(node_id)
            self.skip_ws()
            if self.peek_char() in _EDGE_OPENERS:
                self.parse_edge_chain(node_id)
        elif c in _EDGE_OPENERS:
            self.ensure_node(node_id)
            self.parse_edge_chain(node_id)
        else:
            # Covers "A & B & C": only the first id is kept.
            self.ensure_node(node_id)

    def parse_graph(self) -> Graph | None:
        self.skip_blank()
        if not (self.consume_keyword("flowchart") or self.consume_keyword("graph")):
            return None
        direction = self.parse_direction_value()
        if direction is not None:
            self.graph.direction = direction
        self.skip_line()

        while not self.eof():
            self.skip_blank()
            if self.eof():
                break
            self.parse_line()
            self.skip_line()

        if self.stack:
            logger.debug("%d subgraph(s) left open at end of input", len(self.stack))
        return self.graph


class FlowchartParser:
    """Flowchart/graph diagram parser."""

    def parse(self, src: str) -> Graph | None:
        cursor = _Cursor(src=src)
        return cursor.parse_graph()
