"""Tests for mermaid_layout.layout — sizing, layering, positioning, routing, fit and bounds."""

import pytest

from mermaid_layout.ir.graph import FlowchartState, create_edge, create_node
from mermaid_layout.layout import (
    MIN_NODE_HEIGHT,
    MIN_NODE_WIDTH,
    MIN_SCALE,
    OUTER_PADDING,
    TITLE_BAR_HEIGHT,
    HeuristicMetrics,
    LayerAssignment,
    compute_layout,
    fit_scale,
    group_by_subgraph,
    label_dimensions,
    shape_padding,
    size_nodes,
)
from mermaid_layout.parsers import parse
from mermaid_layout.types import Direction, NodeShape


def _laid_out(src: str, width: float = 800.0, height: float = 600.0) -> FlowchartState:
    state = parse(src)
    assert state is not None
    compute_layout(state, width, height)
    return state


def _layers(src: str) -> dict[str, int]:
    state = parse(src)
    return LayerAssignment.assign(state).layers


class FixedMetrics:
    """Every character is 10 wide, every line 20 high."""

    def text_width(self, text: str, font_size: float) -> float:
        return len(text) * 10.0

    def font_height(self, font_size: float) -> float:
        return 20.0


# ─── Sizing ──────────────────────────────────────────────────────────────────


class TestSizing:
    def test_heuristic_metrics(self):
        metrics = HeuristicMetrics()
        assert metrics.text_width("abcd", 10.0) == pytest.approx(24.0)
        assert metrics.font_height(10.0) == pytest.approx(12.0)

    def test_label_dimensions_multiline(self):
        w, h = label_dimensions("ab\nabcd\nc", 14.0, FixedMetrics())
        assert w == 40.0
        assert h == 60.0

    def test_empty_label_width(self):
        w, h = label_dimensions("", 14.0, FixedMetrics())
        assert w == 50.0
        assert h == 20.0

    def test_shape_padding(self):
        assert shape_padding(NodeShape.Rectangle) == (32.0, 20.0)
        assert shape_padding(NodeShape.Diamond) == (64.0, 40.0)
        assert shape_padding(NodeShape.Circle) == (48.0, 30.0)
        assert shape_padding(NodeShape.Hexagon) == (48.0, 30.0)

    def test_rectangle_size(self):
        state = FlowchartState()
        state.register_node(create_node("A", label="Hello"))
        size_nodes(state, FixedMetrics())
        node = state.nodes[0]
        assert node.width == 50.0 + 32.0
        assert node.height == 20.0 + 20.0

    def test_minimum_floor(self):
        state = FlowchartState()
        state.register_node(create_node("A", label="x"))
        size_nodes(state, FixedMetrics())
        assert state.nodes[0].width == MIN_NODE_WIDTH
        assert state.nodes[0].height >= MIN_NODE_HEIGHT

    @pytest.mark.parametrize("shape", [NodeShape.Circle, NodeShape.Diamond])
    def test_square_shapes(self, shape):
        state = FlowchartState()
        state.register_node(create_node("A", shape=shape, label="A fairly long label"))
        size_nodes(state, FixedMetrics())
        node = state.nodes[0]
        assert node.width == node.height
        assert node.width > 180.0

    def test_hexagon_is_not_squared(self):
        state = FlowchartState()
        state.register_node(create_node("A", shape=NodeShape.Hexagon, label="A fairly long label"))
        size_nodes(state, FixedMetrics())
        assert state.nodes[0].width != state.nodes[0].height

    def test_injected_metrics_are_used(self):
        state = parse("flowchart TD\nA[Hello]")
        compute_layout(state, 800, 600, metrics=FixedMetrics())
        assert state.nodes[0].width == 82.0

    def test_font_size_knob(self):
        small = parse("flowchart TD\nA[Some label text]")
        large = parse("flowchart TD\nA[Some label text]")
        large.font_size = 28.0
        compute_layout(small, 800, 600)
        compute_layout(large, 800, 600)
        assert large.nodes[0].width > small.nodes[0].width


# ─── Layering ────────────────────────────────────────────────────────────────


class TestLayering:
    def test_chain(self):
        assert _layers("flowchart TD\nA-->B-->C") == {"A": 0, "B": 1, "C": 2}

    def test_longest_path_wins(self):
        layers = _layers("flowchart TD\nA-->B-->C\nA-->C")
        assert layers["C"] == 2

    def test_diamond_dag(self):
        layers = _layers("flowchart TD\nA-->B\nA-->C\nB-->D\nC-->D")
        assert layers == {"A": 0, "B": 1, "C": 1, "D": 2}

    def test_waits_for_all_predecessors(self):
        layers = _layers("flowchart TD\nX-->D\nA-->B-->C-->D")
        assert layers["D"] == 3
        assert layers["X"] == 0

    def test_pure_cycle(self):
        layers = _layers("flowchart TB\nA-->B-->C-->A")
        assert layers == {"A": 0, "B": 1, "C": 2}

    def test_cycle_with_entry(self):
        layers = _layers("flowchart TD\nX-->A\nA-->B\nB-->A\nB-->Y")
        assert layers["X"] == 0
        assert layers["A"] == 1
        assert layers["B"] == 2
        assert layers["Y"] == 3

    def test_cycle_feeding_cycle(self):
        layers = _layers("flowchart TB\nA-->B\nB-->A\nC-->D\nD-->C\nC-->A")
        assert layers["C"] == 0
        assert layers["A"] > layers["C"]
        assert layers == {"A": 1, "B": 0, "C": 0, "D": 1}

    def test_self_loop(self):
        assert _layers("flowchart TD\nA-->A\nA-->B") == {"A": 0, "B": 1}

    def test_disconnected_nodes(self):
        layers = _layers("flowchart TD\nA\nB\nC-->D")
        assert layers == {"A": 0, "B": 0, "C": 0, "D": 1}

    def test_unresolved_edges_do_not_constrain(self):
        layers = _layers("flowchart TD\nsubgraph s1\nA\nend\ns1-->A")
        assert layers == {"A": 0}

    def test_layer_count(self):
        assignment = LayerAssignment.assign(parse("flowchart TD\nA-->B-->C"))
        assert assignment.layer_count == 3

    def test_empty(self):
        assignment = LayerAssignment.assign(FlowchartState())
        assert assignment.layers == {}
        assert assignment.layer_count == 0


# ─── Positioning ─────────────────────────────────────────────────────────────


class TestPositioning:
    def test_top_down(self):
        state = _laid_out("flowchart TB\nA-->B")
        a, b = state.find_node("A"), state.find_node("B")
        assert a.y < b.y
        assert a.x == pytest.approx(b.x)
        assert a.layer == 0 and b.layer == 1

    def test_bottom_up(self):
        state = _laid_out("flowchart BT\nA-->B")
        assert state.find_node("A").y > state.find_node("B").y

    def test_left_right(self):
        state = _laid_out("flowchart LR\nA-->B")
        a, b = state.find_node("A"), state.find_node("B")
        assert a.x < b.x
        assert a.y == pytest.approx(b.y)

    def test_right_left(self):
        state = _laid_out("flowchart RL\nA-->B")
        assert state.find_node("A").x > state.find_node("B").x

    def test_rank_spacing(self):
        state = _laid_out("flowchart TB\nA-->B")
        a, b = state.find_node("A"), state.find_node("B")
        assert b.y - a.y == pytest.approx(a.height + state.rank_spacing)

    def test_siblings_spaced_and_parent_centred(self):
        state = _laid_out("flowchart TB\nA-->B\nA-->C")
        a, b, c = (state.find_node(i) for i in "ABC")
        assert b.y == pytest.approx(c.y)
        assert c.x - b.x == pytest.approx(b.width + state.node_spacing)
        assert a.center[0] == pytest.approx((b.center[0] + c.center[0]) / 2)

    def test_uniform_slots_centre_smaller_nodes(self):
        state = _laid_out("flowchart TB\nA[A much longer label]-->B")
        a, b = state.find_node("A"), state.find_node("B")
        assert b.width < a.width
        assert a.center[0] == pytest.approx(b.center[0])

    def test_nodes_do_not_overlap(self):
        state = _laid_out("flowchart TB\nA-->B & C\nA-->C\nA-->D\nB-->E\nC-->E\nD-->E")
        nodes = state.nodes
        for i, first in enumerate(nodes):
            for second in nodes[i + 1 :]:
                separate_x = first.x + first.width <= second.x + 1e-6 or second.x + second.width <= first.x + 1e-6
                separate_y = first.y + first.height <= second.y + 1e-6 or second.y + second.height <= first.y + 1e-6
                assert separate_x or separate_y, (first.id, second.id)

    def test_subgraph_members_are_contiguous_in_a_layer(self):
        src = "flowchart TB\nsubgraph s1\nA\nend\nX\nsubgraph s2\nB\nend\nsubgraph s1b\nC\nend\nR-->A\nR-->X\nR-->B\nR-->C"
        state = _laid_out(src)
        row = sorted((n for n in state.nodes if n.layer == 1), key=lambda n: n.x)
        assert [n.id for n in row] == ["X", "A", "B", "C"]

    def test_group_by_subgraph_nesting(self):
        state = parse("flowchart TB\nsubgraph s1\nA\nsubgraph s2\nB\nend\nend\nX")
        b, x, a = state.find_node("B"), state.find_node("X"), state.find_node("A")
        assert [n.id for n in group_by_subgraph(state, [b, x, a])] == ["B", "A", "X"]
        assert [n.id for n in group_by_subgraph(state, [x, a, b])] == ["X", "A", "B"]


class TestDirectionOverride:
    def test_lr_subgraph_in_td_flowchart(self):
        state = _laid_out("flowchart TB\nsubgraph s1\ndirection LR\nA-->B\nend")
        a, b = state.find_node("A"), state.find_node("B")
        assert a.y == pytest.approx(b.y)
        assert b.x > a.x
        assert a.layer == 0 and b.layer == 1

    def test_override_keeps_block_anchor(self):
        state = _laid_out("flowchart TB\nsubgraph s1\ndirection LR\nA-->B\nend\nS-->A")
        s, a, b = (state.find_node(i) for i in "SAB")
        assert a.y > s.y
        assert a.y == pytest.approx(b.y)
        assert b.x > a.x

    def test_same_direction_is_not_an_override(self):
        plain = _laid_out("flowchart TB\nsubgraph s1\nA-->B\nend")
        same = _laid_out("flowchart TB\nsubgraph s1\ndirection TB\nA-->B\nend")
        assert [(n.x, n.y) for n in plain.nodes] == [(n.x, n.y) for n in same.nodes]

    def test_nested_override_applies_parent_first(self):
        src = "flowchart TB\nsubgraph outer\ndirection LR\nA-->B\nsubgraph inner\ndirection TB\nC-->D\nend\nend\nB-->C"
        state = _laid_out(src)
        a, b, c, d = (state.find_node(i) for i in "ABCD")
        assert b.x > a.x
        assert d.y > c.y
        assert c.x == pytest.approx(d.x)


# ─── Routing ─────────────────────────────────────────────────────────────────


class TestRouting:
    def test_centre_to_centre(self):
        state = _laid_out("flowchart TB\nA-->B")
        edge = state.edges[0]
        assert edge.path == [state.find_node("A").center, state.find_node("B").center]
        assert edge.is_routed

    def test_label_anchor_at_midpoint(self):
        state = _laid_out("flowchart LR\nA-->|go|B")
        edge = state.edges[0]
        (x1, y1), (x2, y2) = edge.path
        assert edge.label_x == pytest.approx((x1 + x2) / 2)
        assert edge.label_y == pytest.approx((y1 + y2) / 2)

    def test_unresolved_edge_has_no_path(self):
        state = _laid_out("flowchart TB\nsubgraph s1\nA\nend\nB-->s1")
        edge = state.edges[0]
        assert edge.path == []
        assert edge.label_x is None
        assert not edge.is_routed


# ─── Viewport Fit ────────────────────────────────────────────────────────────


class TestFit:
    def test_fit_scale_formula(self):
        assert fit_scale((100.0, 100.0), (800.0, 600.0)) == 1.0
        assert fit_scale((440.0, 100.0), (240.0, 600.0)) == pytest.approx(MIN_SCALE)
        assert fit_scale((240.0, 540.0), (800.0, 440.0)) == pytest.approx(0.8)

    def test_fit_scale_ignores_non_positive_viewport(self):
        assert fit_scale((1000.0, 1000.0), (0.0, 0.0)) == 1.0

    def test_outer_padding_applied(self):
        state = _laid_out("flowchart TB\nA")
        node = state.nodes[0]
        assert node.x == pytest.approx(OUTER_PADDING)
        assert node.y == pytest.approx(OUTER_PADDING)
        assert state.scale == 1.0

    def test_natural_and_content_size(self):
        state = _laid_out("flowchart TB\nA-->B")
        b = state.find_node("B")
        assert state.content_height == pytest.approx(b.y + b.height - OUTER_PADDING)
        assert state.natural_height == pytest.approx(state.content_height + 2 * OUTER_PADDING)
        assert state.natural_width == pytest.approx(b.width + 2 * OUTER_PADDING)

    def test_scales_positions_not_sizes(self):
        unscaled = _laid_out("flowchart TB\nA-->B")
        scaled = _laid_out("flowchart TB\nA-->B", width=800, height=130)
        expected = (130 - 2 * OUTER_PADDING) / (unscaled.natural_height - 2 * OUTER_PADDING)
        assert scaled.scale == pytest.approx(expected)
        for before, after in zip(unscaled.nodes, scaled.nodes):
            assert after.width == before.width
            assert after.height == before.height
            assert after.y - OUTER_PADDING == pytest.approx((before.y - OUTER_PADDING) * expected)

    def test_minimum_scale(self):
        src = "flowchart TB\n" + "\n".join(f"N{i}-->N{i + 1}" for i in range(30))
        state = _laid_out(src, width=800, height=100)
        assert state.scale == MIN_SCALE

    def test_edges_follow_scaled_nodes(self):
        state = _laid_out("flowchart TB\nA-->B-->C-->D", width=800, height=200)
        assert state.scale < 1.0
        for edge in state.edges:
            assert edge.path[0] == pytest.approx(state.find_node(edge.from_id).center)
            assert edge.path[1] == pytest.approx(state.find_node(edge.to_id).center)


# ─── Subgraph Bounds ─────────────────────────────────────────────────────────


class TestSubgraphBounds:
    def test_bounds_wrap_members(self):
        state = _laid_out("flowchart TB\nsubgraph s1[Group]\nA-->B\nend\nC-->A")
        sg = state.find_subgraph("s1")
        a, b = state.find_node("A"), state.find_node("B")
        pad = state.subgraph_padding
        assert sg.has_bounds
        assert sg.x == pytest.approx(min(a.x, b.x) - pad)
        assert sg.y == pytest.approx(a.y - pad - TITLE_BAR_HEIGHT)
        assert sg.x + sg.width == pytest.approx(max(a.x + a.width, b.x + b.width) + pad)
        assert sg.y + sg.height == pytest.approx(b.y + b.height + pad)

    def test_shift_keeps_boxes_in_positive_space(self):
        state = _laid_out("flowchart TB\nsubgraph s1\nA-->B\nend")
        sg = state.find_subgraph("s1")
        assert sg.x >= 0.0
        assert sg.y >= 0.0
        assert state.content_offset_x > 0.0
        assert state.content_offset_y > 0.0
        edge = state.edges[0]
        assert edge.path[0] == pytest.approx(state.find_node("A").center)

    def test_no_shift_without_subgraphs(self):
        state = _laid_out("flowchart TB\nA-->B")
        assert state.content_offset_x == 0.0
        assert state.content_offset_y == 0.0

    def test_nested_bounds_contain_children(self):
        state = _laid_out("flowchart TB\nsubgraph outer\nsubgraph inner\nA\nend\nend")
        outer, inner = state.find_subgraph("outer"), state.find_subgraph("inner")
        assert outer.has_bounds and inner.has_bounds
        assert inner.x - outer.x == pytest.approx(state.subgraph_padding)
        assert inner.y - outer.y == pytest.approx(state.subgraph_padding + TITLE_BAR_HEIGHT)
        assert outer.width == pytest.approx(inner.width + 2 * state.subgraph_padding)

    def test_empty_subgraph_has_no_bounds(self):
        state = _laid_out("flowchart TB\nsubgraph e\nend\nA")
        sg = state.find_subgraph("e")
        assert not sg.has_bounds
        assert (sg.x, sg.y, sg.width, sg.height) == (0.0, 0.0, 0.0, 0.0)

    def test_natural_size_encloses_subgraph_boxes(self):
        state = _laid_out("flowchart TB\nsubgraph s1\nA\nend")
        sg = state.find_subgraph("s1")
        assert sg.x + sg.width + OUTER_PADDING <= state.natural_width + 1e-9
        assert sg.y + sg.height + OUTER_PADDING <= state.natural_height + 1e-9
        assert state.content_width == pytest.approx(state.natural_width - 2 * OUTER_PADDING)
        assert state.content_height == pytest.approx(state.natural_height - 2 * OUTER_PADDING)

    def test_subgraph_padding_knob(self):
        state = parse("flowchart TB\nsubgraph s1\nA\nend")
        state.subgraph_padding = 10.0
        compute_layout(state, 800, 600)
        sg, a = state.find_subgraph("s1"), state.find_node("A")
        assert sg.width == pytest.approx(a.width + 20.0)


# ─── Entry point ─────────────────────────────────────────────────────────────


class TestComputeLayout:
    def test_ignores_non_state(self):
        compute_layout(None, 800, 600)
        compute_layout("flowchart TD\nA", 800, 600)

    def test_empty_flowchart(self):
        state = _laid_out("flowchart TD")
        assert state.layout_computed
        assert state.content_width == 100.0
        assert state.content_height == 100.0
        assert state.natural_width == 140.0
        assert state.scale == 1.0

    def test_marks_computed(self):
        state = _laid_out("flowchart TD\nA-->B", width=640, height=480)
        assert state.layout_computed
        assert state.computed_width == 640
        assert state.computed_height == 480

    def test_same_viewport_is_a_no_op(self):
        state = _laid_out("flowchart TD\nA-->B")
        state.nodes[0].x = -999.0
        compute_layout(state, 800, 600)
        assert state.nodes[0].x == -999.0

    def test_new_viewport_recomputes(self):
        state = _laid_out("flowchart TD\nA-->B")
        original = state.nodes[0].x
        state.nodes[0].x = -999.0
        compute_layout(state, 801, 600)
        assert state.nodes[0].x == pytest.approx(original)

    def test_invalidate_recomputes(self):
        state = _laid_out("flowchart TD\nA-->B")
        state.set_node_style("A", fill=0x000000FF)
        assert not state.layout_computed
        compute_layout(state, 800, 600)
        assert state.layout_computed

    def test_direction_change_recomputes(self):
        state = _laid_out("flowchart TD\nA-->B")
        state.set_direction(Direction.LR)
        compute_layout(state, 800, 600)
        a, b = state.find_node("A"), state.find_node("B")
        assert b.x > a.x
        assert b.y == pytest.approx(a.y)

    def test_edge_registered_after_layout(self):
        state = _laid_out("flowchart TD\nA\nB")
        state.register_edge(create_edge("A", "B"))
        compute_layout(state, 800, 600)
        assert state.find_node("B").layer == 1
