"""Directed graph data structure for workflow analysis.

This module provides a generic directed graph used by the validator and
the execution order resolver. Nodes keep insertion order so every
traversal over the graph is reproducible.

Time Complexity:
- Node/Edge addition: O(1)
- Subgraph extraction: O(V + E)

Space Complexity: O(V + E)
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Hashable, Iterable
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from poweragent.schemas.workflow import Workflow

NodeId = TypeVar("NodeId", bound=Hashable)


class Graph(Generic[NodeId]):
    """Directed graph with forward and reverse adjacency lists.

    Parallel edges are kept (a conditional may route both arms to the
    same node); self-loops are representable and rejected by higher
    layers.

    Example:
        >>> graph = Graph[str]()
        >>> graph.add_edge("start", "delegate_1")
        >>> graph.get_successors("start")
        ['delegate_1']
    """

    __slots__ = ("_adjacency", "_edge_count", "_nodes", "_reverse_adjacency")

    def __init__(self) -> None:
        """Initialize an empty directed graph."""
        self._adjacency: defaultdict[NodeId, list[NodeId]] = defaultdict(list)
        self._reverse_adjacency: defaultdict[NodeId, list[NodeId]] = defaultdict(list)
        # dict rather than set: insertion order drives deterministic traversal
        self._nodes: dict[NodeId, None] = {}
        self._edge_count: int = 0

    @property
    def nodes(self) -> list[NodeId]:
        """Nodes in insertion order."""
        return list(self._nodes)

    @property
    def node_count(self) -> int:
        """Get the number of nodes in the graph."""
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        """Get the number of edges in the graph."""
        return self._edge_count

    def add_node(self, node_id: NodeId) -> None:
        """Add a node to the graph. Adding an existing node is a no-op."""
        self._nodes.setdefault(node_id, None)

    def add_edge(self, source: NodeId, target: NodeId) -> None:
        """Add a directed edge from source to target.

        Both nodes are added to the graph if they don't exist.
        Duplicate edges are allowed.
        """
        self.add_node(source)
        self.add_node(target)
        self._adjacency[source].append(target)
        self._reverse_adjacency[target].append(source)
        self._edge_count += 1

    def remove_edges(self, source: NodeId, target: NodeId) -> int:
        """Remove every edge from source to target.

        Returns:
            Number of edges removed.
        """
        forward = self._adjacency.get(source, [])
        removed = forward.count(target)
        if removed:
            self._adjacency[source] = [n for n in forward if n != target]
            self._reverse_adjacency[target] = [
                n for n in self._reverse_adjacency[target] if n != source
            ]
            self._edge_count -= removed
        return removed

    def has_edge(self, source: NodeId, target: NodeId) -> bool:
        """Check if an edge exists from source to target."""
        return target in self._adjacency.get(source, [])

    def get_successors(self, node_id: NodeId) -> list[NodeId]:
        """Get successor nodes (outgoing neighbors), duplicates included."""
        return self._adjacency.get(node_id, [])

    def get_predecessors(self, node_id: NodeId) -> list[NodeId]:
        """Get predecessor nodes (incoming neighbors), duplicates included."""
        return self._reverse_adjacency.get(node_id, [])

    def get_in_degree(self, node_id: NodeId) -> int:
        """Get the number of incoming edges for a node."""
        return len(self._reverse_adjacency.get(node_id, []))

    def get_out_degree(self, node_id: NodeId) -> int:
        """Get the number of outgoing edges for a node."""
        return len(self._adjacency.get(node_id, []))

    def subgraph(self, node_ids: Iterable[NodeId]) -> Graph[NodeId]:
        """Return the subgraph induced by ``node_ids``.

        Node order follows this graph's insertion order.
        """
        keep = set(node_ids)
        sub = Graph[NodeId]()
        for node in self._nodes:
            if node in keep:
                sub.add_node(node)
        for node in sub.nodes:
            for successor in self._adjacency.get(node, []):
                if successor in keep:
                    sub.add_edge(node, successor)
        return sub

    def copy(self) -> Graph[NodeId]:
        """Create a copy with independent adjacency lists."""
        new_graph = Graph[NodeId]()
        new_graph._nodes = self._nodes.copy()
        new_graph._adjacency = defaultdict(
            list,
            {k: v.copy() for k, v in self._adjacency.items()},
        )
        new_graph._reverse_adjacency = defaultdict(
            list,
            {k: v.copy() for k, v in self._reverse_adjacency.items()},
        )
        new_graph._edge_count = self._edge_count
        return new_graph

    def __contains__(self, node_id: object) -> bool:
        """Check if a node exists in the graph."""
        return node_id in self._nodes

    def __len__(self) -> int:
        """Get the number of nodes in the graph."""
        return len(self._nodes)

    def __repr__(self) -> str:
        """Return string representation of the graph."""
        return f"Graph(nodes={self.node_count}, edges={self.edge_count})"


def build_workflow_graph(workflow: Workflow) -> Graph[str]:
    """Build the analysis graph for a workflow.

    Nodes are added in document order. Edges whose endpoints are missing
    and self-loops are left out; the validator reports those separately.
    """
    graph = Graph[str]()
    for node in workflow.nodes:
        graph.add_node(node.id)

    for edge in workflow.edges:
        if edge.source == edge.target:
            continue
        if edge.source not in graph or edge.target not in graph:
            continue
        graph.add_edge(edge.source, edge.target)

    return graph


__all__ = ["Graph", "build_workflow_graph"]
