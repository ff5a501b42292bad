"""Tests for Graph data structure.

Test suite for the directed graph including node/edge operations,
ordering guarantees, subgraph extraction, and workflow graph building.
"""

from poweragent.schemas.workflow import Workflow, create_edge, create_node
from poweragent.services.workflow.graph import Graph, build_workflow_graph


class TestGraphInitialization:
    """Tests for Graph class initialization and basic properties."""

    def test_empty_graph_initialization(self) -> None:
        """Test that a new graph is empty."""
        graph = Graph[str]()
        assert graph.node_count == 0
        assert graph.edge_count == 0
        assert len(graph) == 0

    def test_graph_repr(self) -> None:
        """Test string representation of graph."""
        graph = Graph[str]()
        graph.add_edge("a", "b")
        assert repr(graph) == "Graph(nodes=2, edges=1)"


class TestNodeOperations:
    """Tests for node addition and ordering."""

    def test_add_duplicate_node_is_noop(self) -> None:
        """Test that adding a duplicate node doesn't increase count."""
        graph = Graph[str]()
        graph.add_node("a")
        graph.add_node("a")
        assert graph.node_count == 1

    def test_nodes_keep_insertion_order(self) -> None:
        """Test that nodes are listed in the order they were first added."""
        graph = Graph[str]()
        for node in ["c", "a", "b", "a"]:
            graph.add_node(node)
        assert graph.nodes == ["c", "a", "b"]


class TestEdgeOperations:
    """Tests for edge addition and removal."""

    def test_add_edge_adds_missing_nodes(self) -> None:
        """Test that add_edge creates both endpoints."""
        graph = Graph[str]()
        graph.add_edge("a", "b")
        assert "a" in graph
        assert "b" in graph
        assert graph.has_edge("a", "b")
        assert not graph.has_edge("b", "a")

    def test_parallel_edges_are_kept(self) -> None:
        """Test that both arms of a conditional may target the same node."""
        graph = Graph[str]()
        graph.add_edge("check", "x")
        graph.add_edge("check", "x")
        assert graph.edge_count == 2
        assert graph.get_successors("check") == ["x", "x"]
        assert graph.get_in_degree("x") == 2

    def test_remove_edges_removes_all_parallel_edges(self) -> None:
        """Test that remove_edges drops every source -> target edge."""
        graph = Graph[str]()
        graph.add_edge("a", "b")
        graph.add_edge("a", "b")
        graph.add_edge("a", "c")

        removed = graph.remove_edges("a", "b")

        assert removed == 2
        assert graph.edge_count == 1
        assert graph.get_successors("a") == ["c"]
        assert graph.get_predecessors("b") == []

    def test_remove_missing_edge_returns_zero(self) -> None:
        """Test that removing an absent edge changes nothing."""
        graph = Graph[str]()
        graph.add_edge("a", "b")
        assert graph.remove_edges("b", "a") == 0
        assert graph.edge_count == 1

    def test_degrees(self) -> None:
        """Test in/out degree counts."""
        graph = Graph[str]()
        graph.add_edge("a", "b")
        graph.add_edge("a", "c")
        graph.add_edge("b", "c")
        assert graph.get_out_degree("a") == 2
        assert graph.get_in_degree("c") == 2
        assert graph.get_in_degree("unknown") == 0


class TestSubgraphAndCopy:
    """Tests for subgraph extraction and copying."""

    def test_subgraph_keeps_only_internal_edges(self) -> None:
        """Test that edges leaving the kept set are dropped."""
        graph = Graph[str]()
        graph.add_edge("a", "b")
        graph.add_edge("b", "c")
        graph.add_edge("c", "a")

        sub = graph.subgraph(["a", "b"])

        assert sub.nodes == ["a", "b"]
        assert sub.has_edge("a", "b")
        assert sub.edge_count == 1

    def test_copy_is_independent(self) -> None:
        """Test that modifying a copy leaves the original untouched."""
        graph = Graph[str]()
        graph.add_edge("a", "b")

        clone = graph.copy()
        clone.add_edge("b", "c")
        clone.remove_edges("a", "b")

        assert graph.has_edge("a", "b")
        assert "c" not in graph
        assert graph.edge_count == 1


class TestBuildWorkflowGraph:
    """Tests for building the analysis graph from a workflow."""

    def test_nodes_in_document_order(self) -> None:
        """Test that graph nodes follow the workflow's node order."""
        workflow = Workflow(
            nodes=[
                create_node("end", node_id="end"),
                create_node("start", node_id="start"),
            ],
            edges=[create_edge("start", "end", edge_id="e1")],
        )
        graph = build_workflow_graph(workflow)
        assert graph.nodes == ["end", "start"]
        assert graph.has_edge("start", "end")

    def test_self_loops_and_dangling_edges_are_skipped(self) -> None:
        """Test that invalid edges never reach the analysis graph."""
        workflow = Workflow(
            nodes=[create_node("delegate", node_id="a")],
            edges=[
                create_edge("a", "a", edge_id="loop"),
                create_edge("a", "ghost", edge_id="dangling"),
            ],
        )
        graph = build_workflow_graph(workflow)
        assert graph.nodes == ["a"]
        assert graph.edge_count == 0
