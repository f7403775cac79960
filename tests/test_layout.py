"""Tests for the layout engine.

Covers:
- Spine centering and height-aware vertical stacking
- Branch placement around decision nodes and merge points
- Island packing for disconnected subgraphs
- Loop-back handling under both classification policies
- Degenerate inputs (empty, dangling edges, cycles)
"""
import pytest

from flowmap.layout import LayoutParams, layout
from flowmap.layout.components import UnionFind, find_islands
from flowmap.layout.levels import assign_levels
from flowmap.layout.loopback import forward_edges
from flowmap.models.graph import Edge, Node, Position


def make_node(node_id, node_type="default", x=0, y=0, **data):
    return Node(id=node_id, type=node_type, position=Position(x=x, y=y), data={"label": node_id, **data})


def make_edge(source, target, **extra):
    return Edge(id=f"e{source}-{target}", source=source, target=target, **extra)


def positions(nodes):
    return {node.id: (node.position.x, node.position.y) for node in nodes}


def center_x(node):
    widths = {"default": 150, "oval": 160, "diamond": 160}
    return node.position.x + widths[node.type] / 2


@pytest.fixture
def decision_flow():
    """Start -> step -> decision -> two branches."""
    nodes = [
        make_node("1", "oval"),
        make_node("2", "default"),
        make_node("3", "diamond", outputCount=2),
        make_node("4", "default"),
        make_node("5", "default"),
    ]
    edges = [
        make_edge("1", "2"),
        make_edge("2", "3"),
        make_edge("3", "4", sourceHandle="left"),
        make_edge("3", "5", sourceHandle="right"),
    ]
    return nodes, edges


class TestSpineLayout:
    """Sequential flows and branches around the spine."""

    def test_decision_flow_positions(self, decision_flow):
        """Reference flow lands on known coordinates."""
        nodes, edges = decision_flow
        params = LayoutParams(centerX=300, branchOffset=200, verticalGap=60)

        result = positions(layout(nodes, edges, params))

        assert result == {
            "1": (220, 0),
            "2": (225, 105),
            "3": (220, 215),
            "4": (25, 435),
            "5": (425, 435),
        }

    def test_sequential_nodes_share_center(self):
        """Nodes of different widths in a chain are centered on the spine."""
        nodes = [make_node("a", "oval"), make_node("b"), make_node("c", "diamond"), make_node("d", "oval")]
        edges = [make_edge("a", "b"), make_edge("b", "c"), make_edge("c", "d")]

        for node in layout(nodes, edges):
            assert center_x(node) == 300

    def test_vertical_spacing_uses_tallest_node(self):
        """A level starts below the tallest node of the previous level."""
        nodes = [make_node("d", "diamond"), make_node("a"), make_node("b", "oval")]
        edges = [make_edge("d", "a"), make_edge("d", "b")]

        result = {node.id: node for node in layout(nodes, edges, LayoutParams(verticalGap=40))}

        assert result["d"].position.y == 0
        assert result["a"].position.y == 200
        assert result["b"].position.y == 200

    def test_two_way_branch_is_symmetric(self, decision_flow):
        nodes, edges = decision_flow
        result = {node.id: node for node in layout(nodes, edges)}

        assert center_x(result["4"]) == 300 - 200
        assert center_x(result["5"]) == 300 + 200

    def test_wide_level_spreads_evenly(self):
        """Three or more siblings are spaced by the branch offset around the spine."""
        nodes = [make_node("root", "diamond", outputCount=3), make_node("a"), make_node("b"), make_node("c")]
        edges = [make_edge("root", child) for child in ("a", "b", "c")]

        result = {node.id: node for node in layout(nodes, edges)}

        assert [center_x(result[n]) for n in ("a", "b", "c")] == [100, 300, 500]

    def test_single_child_stays_in_branch_lane(self):
        """A node following an off-spine parent keeps the parent's lane."""
        nodes = [
            make_node("d", "diamond"),
            make_node("left"),
            make_node("right"),
            make_node("left-next"),
        ]
        edges = [make_edge("d", "left"), make_edge("d", "right"), make_edge("left", "left-next")]

        result = {node.id: node for node in layout(nodes, edges)}

        assert center_x(result["left-next"]) == center_x(result["left"]) == 100

    def test_merge_point_centers_between_parents(self):
        """A node joined by two branches sits at the mean of their centers."""
        nodes = [make_node("d", "diamond"), make_node("yes"), make_node("no"), make_node("join")]
        edges = [
            make_edge("d", "yes"),
            make_edge("d", "no"),
            make_edge("yes", "join"),
            make_edge("no", "join"),
        ]

        result = {node.id: node for node in layout(nodes, edges)}

        assert center_x(result["join"]) == 300

    def test_output_keeps_input_order_and_data(self, decision_flow):
        nodes, edges = decision_flow
        result = layout(nodes, edges)

        assert [node.id for node in result] == [node.id for node in nodes]
        assert result[2].data.output_count == 2
        assert result[0].data.label == "1"

    def test_inputs_not_mutated(self, decision_flow):
        nodes, edges = decision_flow
        layout(nodes, edges)

        assert all(node.position.x == 0 and node.position.y == 0 for node in nodes)

    def test_deterministic(self, decision_flow):
        nodes, edges = decision_flow
        assert positions(layout(nodes, edges)) == positions(layout(nodes, edges))

    def test_unknown_type_uses_fallback_size(self):
        nodes = [make_node("x", "custom")]

        result = layout(nodes, [])

        assert result[0].position.x == 300 - 180 / 2


class TestLeveling:
    """Depth assignment for merge points."""

    @pytest.fixture
    def uneven_merge(self):
        """``join`` is reached directly from ``a`` and through ``b``."""
        nodes = [make_node("a"), make_node("b"), make_node("join")]
        edges = [make_edge("a", "join"), make_edge("a", "b"), make_edge("b", "join")]
        return nodes, edges

    def test_longest_path_places_merge_below_deepest_parent(self, uneven_merge):
        nodes, edges = uneven_merge
        result = {node.id: node for node in layout(nodes, edges)}

        assert result["join"].position.y > result["b"].position.y

    def test_first_visit_places_merge_at_first_depth(self, uneven_merge):
        nodes, edges = uneven_merge
        result = {
            node.id: node
            for node in layout(nodes, edges, LayoutParams(leveling="first_visit"))
        }

        assert result["join"].position.y == result["b"].position.y

    def test_cycle_without_roots_falls_back_to_first_node(self):
        levels, _ = assign_levels(["a", "b", "c"], [("a", "b"), ("b", "c"), ("c", "a")])
        assert levels["a"] == 0
        assert levels["b"] == 1
        assert levels["c"] == 2

    def test_rework_loop_keeps_flow_order(self):
        """A cycle is entered from the node already reached, not from the earliest pending one."""
        nodes = [make_node("start", "oval"), make_node("review", "diamond"), make_node("work"), make_node("end", "oval")]
        edges = [
            make_edge("start", "work"),
            make_edge("work", "review"),
            make_edge("review", "work"),
            make_edge("review", "end"),
        ]

        result = {node.id: node for node in layout(nodes, edges)}

        assert result["start"].position.y < result["work"].position.y
        assert result["work"].position.y < result["review"].position.y
        assert result["review"].position.y < result["end"].position.y
        assert all(center_x(node) == 300 for node in result.values())

    def test_cycle_entered_from_deepest_levelled_parent(self):
        levels, _ = assign_levels(
            ["root", "loop-a", "mid", "loop-b"],
            [("root", "mid"), ("root", "loop-a"), ("mid", "loop-b"), ("loop-a", "loop-b"), ("loop-b", "loop-a")],
        )

        assert levels == {"root": 0, "mid": 1, "loop-b": 2, "loop-a": 3}

    def test_first_visit_reaches_every_node(self):
        levels, _ = assign_levels(
            ["a", "b", "c"],
            [("a", "b"), ("b", "c"), ("c", "a")],
            strategy="first_visit",
        )
        assert set(levels) == {"a", "b", "c"}


class TestIslands:
    """Disconnected subgraphs are packed left to right."""

    def test_singletons_are_packed_by_minimum_width(self):
        nodes = [make_node("a"), make_node("b")]

        result = {node.id: node for node in layout(nodes, [], LayoutParams(subgraphGap=150))}

        assert center_x(result["a"]) == 300
        # 300 + 200 + 75 + 75 + 200
        assert center_x(result["b"]) == 850
        assert result["a"].position.y == result["b"].position.y == 0

    def test_wide_island_pushes_next_island(self):
        wide = [make_node("r", "diamond", outputCount=4)] + [make_node(f"c{i}") for i in range(4)]
        wide_edges = [make_edge("r", f"c{i}") for i in range(4)]
        lone = make_node("lone")

        result = {node.id: node for node in layout(wide + [lone], wide_edges)}

        # Widest level of 4 -> width 3 * 200 + 200 = 800
        assert center_x(result["lone"]) == 300 + 400 + 150 + 200

    def test_island_order_follows_first_member(self):
        assert find_islands(["x", "a", "y", "b"], [("a", "b"), ("x", "y")]) == [["x", "y"], ["a", "b"]]

    def test_union_find_compresses_paths(self):
        sets = UnionFind(str(i) for i in range(1000))
        for i in range(999):
            sets.union(str(i), str(i + 1))

        root = sets.find("0")

        assert sets.parent["0"] == root
        assert all(sets.find(str(i)) == root for i in range(1000))


class TestLoopBacks:
    """Edges pointing backwards do not drag their target down."""

    def test_positional_loop_back_ignored_for_leveling(self):
        nodes = [make_node("a", y=0), make_node("b", y=100), make_node("c", y=200)]
        edges = [make_edge("a", "b"), make_edge("b", "c"), make_edge("c", "a")]

        result = {node.id: node for node in layout(nodes, edges)}

        assert result["a"].position.y == 0
        assert result["c"].position.y > result["b"].position.y

    def test_positional_policy_uses_prior_positions(self):
        nodes = [make_node("a", y=300), make_node("b", y=0)]
        edges = [make_edge("a", "b")]

        assert forward_edges(nodes, edges, "positional") == []
        assert forward_edges(nodes, edges, "topological") == edges

    def test_topological_policy_breaks_cycle_at_back_edge(self):
        nodes = [make_node("start"), make_node("work"), make_node("review")]
        edges = [
            make_edge("start", "work"),
            make_edge("work", "review"),
            make_edge("review", "work", label="rework"),
        ]

        kept = forward_edges(nodes, edges, "topological")

        assert [edge.id for edge in kept] == ["estart-work", "ework-review"]

    def test_loop_back_edges_still_returned_untouched(self):
        """Layout only moves nodes; the caller's edge list is not altered."""
        nodes = [make_node("a", y=0), make_node("b", y=100)]
        edges = [make_edge("a", "b"), make_edge("b", "a")]

        layout(nodes, edges)

        assert len(edges) == 2


class TestDegenerateInputs:
    """Malformed or trivial graphs never raise."""

    def test_empty_graph(self):
        assert layout([], []) == []

    def test_single_node_on_spine(self):
        result = layout([make_node("only", "oval")], [], LayoutParams(centerX=500))
        assert (result[0].position.x, result[0].position.y) == (420, 0)

    def test_dangling_edges_ignored(self):
        nodes = [make_node("a"), make_node("b")]
        edges = [make_edge("a", "ghost"), make_edge("ghost", "b"), make_edge("a", "b")]

        result = {node.id: node for node in layout(nodes, edges)}

        assert result["b"].position.y == 110

    def test_self_loops_ignored(self):
        nodes = [make_node("a"), make_node("b")]
        edges = [make_edge("a", "a"), make_edge("a", "b"), make_edge("b", "b", type="selfConnecting")]

        result = {node.id: node for node in layout(nodes, edges)}

        assert result["a"].position.y == 0
        assert result["b"].position.y == 110

    def test_duplicate_edges_counted_once(self):
        nodes = [make_node("d", "diamond"), make_node("a"), make_node("b")]
        edges = [make_edge("d", "a"), make_edge("d", "a"), make_edge("d", "b")]

        result = {node.id: node for node in layout(nodes, edges)}

        assert center_x(result["a"]) == 100
        assert center_x(result["b"]) == 500


class TestTrace:
    """Diagnostics go to an injected sink, never to the console."""

    def test_trace_receives_placement_events(self, decision_flow):
        nodes, edges = decision_flow
        events = []

        layout(nodes, edges, trace=lambda event, fields: events.append((event, fields)))

        names = [name for name, _ in events]
        assert names.count("island_planned") == 1
        assert names.count("node_placed") == 5
        placed = {fields["node_id"]: fields for name, fields in events if name == "node_placed"}
        assert placed["4"]["center_x"] == 100
        assert placed["3"]["level"] == 2

    def test_no_trace_by_default(self, decision_flow, capsys):
        nodes, edges = decision_flow
        layout(nodes, edges)

        assert capsys.readouterr().out == ""
