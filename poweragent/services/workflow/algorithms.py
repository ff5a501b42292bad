"""Graph algorithms for workflow validation and execution planning.

This module provides the graph algorithms behind the validator and the
resolver:
- Cycle detection using DFS with path tracking
- Level-based topological sort using Kahn's algorithm
- Forward reachability (unreachable nodes) using BFS
- Reverse reachability (dead-end nodes) using BFS
- Back-edge discovery for loops that pass through a conditional
- Critical path analysis

Every traversal keeps a visited set, so cyclic graphs terminate. Depth-first
walks use an explicit stack, so long chains never hit the recursion limit.

Time Complexity: O(V + E) for all algorithms (O(V log V + E) where a
sort key is applied).
Space Complexity: O(V + E) for all algorithms.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Hashable, Iterable
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from poweragent.services.workflow.graph import Graph

NodeId = TypeVar("NodeId", bound=Hashable)


class GraphAlgorithms(Generic[NodeId]):
    """Collection of graph algorithms over ``Graph``.

    Example:
        >>> graph = Graph[str]()
        >>> graph.add_edge("a", "b")
        >>> graph.add_edge("b", "a")
        >>> GraphAlgorithms.detect_cycle(graph)
        ['a', 'b', 'a']
    """

    @staticmethod
    def detect_cycle(graph: Graph[NodeId]) -> list[NodeId] | None:
        """Detect a cycle using DFS with path tracking.

        Roots are tried in graph insertion order, so the reported cycle
        is stable for a given graph.

        Returns:
            Closed cycle path (first node repeated at the end) if found,
            None otherwise.

        Example:
            >>> graph.add_edge(a, b)
            >>> graph.add_edge(b, c)
            >>> graph.add_edge(c, a)
            >>> GraphAlgorithms.detect_cycle(graph)
            [a, b, c, a]
        """
        visited: set[NodeId] = set()
        rec_stack: set[NodeId] = set()
        path: list[NodeId] = []

        for root in graph.nodes:
            if root in visited:
                continue

            # Explicit stack of (node, successor iterator); path mirrors it
            visited.add(root)
            rec_stack.add(root)
            path.append(root)
            stack = [(root, iter(graph.get_successors(root)))]

            while stack:
                node, successors = stack[-1]
                for neighbor in successors:
                    if neighbor not in visited:
                        visited.add(neighbor)
                        rec_stack.add(neighbor)
                        path.append(neighbor)
                        stack.append((neighbor, iter(graph.get_successors(neighbor))))
                        break
                    if neighbor in rec_stack:
                        cycle_start = path.index(neighbor)
                        return [*path[cycle_start:], neighbor]
                else:
                    stack.pop()
                    path.pop()
                    rec_stack.remove(node)

        return None

    @staticmethod
    def topological_sort_levels(
        graph: Graph[NodeId],
        sort_key: Callable[[NodeId], Any] | None = None,
    ) -> list[list[NodeId]] | None:
        """Kahn's algorithm for level-based topological sort.

        Level 0 holds nodes without predecessors; level n holds nodes
        whose last predecessor sits on level n - 1.

        Args:
            graph: The graph to sort (must be acyclic).
            sort_key: Orders nodes within a level. Insertion order when
                omitted.

        Returns:
            List of levels, or None if the graph contains a cycle.

        Example:
            >>> graph.add_edge(a, b)
            >>> graph.add_edge(a, c)
            >>> graph.add_edge(b, d)
            >>> graph.add_edge(c, d)
            >>> GraphAlgorithms.topological_sort_levels(graph)
            [[a], [b, c], [d]]
        """
        in_degree: dict[NodeId, int] = {
            node: graph.get_in_degree(node) for node in graph.nodes
        }

        current: list[NodeId] = [node for node in graph.nodes if in_degree[node] == 0]
        levels: list[list[NodeId]] = []
        placed = 0

        while current:
            if sort_key is not None:
                current.sort(key=sort_key)
            levels.append(current)
            placed += len(current)

            next_level: list[NodeId] = []
            for node in current:
                for successor in graph.get_successors(node):
                    in_degree[successor] -= 1
                    if in_degree[successor] == 0:
                        next_level.append(successor)
            current = next_level

        if placed != graph.node_count:
            # Nodes left with positive in-degree sit on a cycle
            return None

        return levels

    @staticmethod
    def find_reachable_from(
        graph: Graph[NodeId],
        start_nodes: Iterable[NodeId],
    ) -> set[NodeId]:
        """Find every node reachable from any start node using BFS.

        Start nodes themselves are included.
        """
        reachable: set[NodeId] = set()
        queue: deque[NodeId] = deque(n for n in start_nodes if n in graph)

        while queue:
            current = queue.popleft()
            if current in reachable:
                continue
            reachable.add(current)
            for successor in graph.get_successors(current):
                if successor not in reachable:
                    queue.append(successor)

        return reachable

    @staticmethod
    def find_unreachable_from(
        graph: Graph[NodeId],
        start_nodes: Iterable[NodeId],
    ) -> set[NodeId]:
        """Find nodes not reachable from any start node.

        Example:
            >>> graph.add_edge(a, b)
            >>> graph.add_edge(c, d)  # c is disconnected
            >>> GraphAlgorithms.find_unreachable_from(graph, {a})
            {c, d}
        """
        reachable = GraphAlgorithms.find_reachable_from(graph, start_nodes)
        return {node for node in graph.nodes if node not in reachable}

    @staticmethod
    def find_nodes_not_reaching(
        graph: Graph[NodeId],
        targets: Iterable[NodeId],
    ) -> set[NodeId]:
        """Find nodes with no forward path to any target.

        Walks the reverse adjacency from the targets; whatever is never
        reached cannot reach a target.

        Example:
            >>> graph.add_edge(a, end)
            >>> graph.add_edge(a, b)  # b leads nowhere
            >>> GraphAlgorithms.find_nodes_not_reaching(graph, {end})
            {b}
        """
        reaching: set[NodeId] = set()
        queue: deque[NodeId] = deque(n for n in targets if n in graph)

        while queue:
            current = queue.popleft()
            if current in reaching:
                continue
            reaching.add(current)
            for predecessor in graph.get_predecessors(current):
                if predecessor not in reaching:
                    queue.append(predecessor)

        return {node for node in graph.nodes if node not in reaching}

    @staticmethod
    def find_back_edges(
        graph: Graph[NodeId],
        roots: Iterable[NodeId],
        sort_key: Callable[[NodeId], Any] | None = None,
    ) -> list[tuple[NodeId, NodeId]]:
        """Find DFS back edges (edges into a node on the current path).

        Removing every back edge leaves an acyclic graph. DFS starts at
        ``roots`` and then at any node not yet visited; successors are
        visited in ``sort_key`` order so the result is stable.

        Returns:
            ``(source, target)`` pairs in discovery order.

        Example:
            >>> graph.add_edge(start, a)
            >>> graph.add_edge(a, check)
            >>> graph.add_edge(check, a)  # retry loop
            >>> GraphAlgorithms.find_back_edges(graph, [start])
            [(check, a)]
        """
        visited: set[NodeId] = set()
        on_path: set[NodeId] = set()
        back_edges: list[tuple[NodeId, NodeId]] = []

        def ordered(nodes: Iterable[NodeId]) -> list[NodeId]:
            unique = list(dict.fromkeys(nodes))
            return unique if sort_key is None else sorted(unique, key=sort_key)

        for root in [*roots, *ordered(graph.nodes)]:
            if root not in graph or root in visited:
                continue

            visited.add(root)
            on_path.add(root)
            stack = [(root, iter(ordered(graph.get_successors(root))))]

            while stack:
                node, successors = stack[-1]
                for successor in successors:
                    if successor in on_path:
                        back_edges.append((node, successor))
                    elif successor not in visited:
                        visited.add(successor)
                        on_path.add(successor)
                        stack.append(
                            (successor, iter(ordered(graph.get_successors(successor))))
                        )
                        break
                else:
                    stack.pop()
                    on_path.discard(node)

        return back_edges

    @staticmethod
    def get_critical_path(graph: Graph[NodeId]) -> tuple[list[NodeId], int]:
        """Find the longest path (critical path) in a DAG.

        Returns:
            Tuple of (path as list of node IDs, path length). Returns
            ``([], 0)`` for cyclic graphs.

        Example:
            >>> graph.add_edge(a, b)
            >>> graph.add_edge(a, c)
            >>> graph.add_edge(b, d)
            >>> graph.add_edge(c, d)
            >>> graph.add_edge(d, e)
            >>> GraphAlgorithms.get_critical_path(graph)
            ([a, b, d, e], 4)
        """
        if GraphAlgorithms.detect_cycle(graph):
            return [], 0

        # Longest path length from each node and the successor it continues to
        length: dict[NodeId, int] = {}
        next_hop: dict[NodeId, NodeId | None] = {}

        for root in graph.nodes:
            if root in length:
                continue

            # Post-order walk: a node is scored once all successors are
            pending: list[tuple[NodeId, bool]] = [(root, False)]
            while pending:
                node, expanded = pending.pop()
                if node in length:
                    continue
                if not expanded:
                    pending.append((node, True))
                    pending.extend(
                        (successor, False)
                        for successor in reversed(graph.get_successors(node))
                        if successor not in length
                    )
                    continue

                best_length = 1
                best_next: NodeId | None = None
                for successor in graph.get_successors(node):
                    if length[successor] + 1 > best_length:
                        best_length = length[successor] + 1
                        best_next = successor
                length[node] = best_length
                next_hop[node] = best_next

        overall_best_path: list[NodeId] = []
        overall_best_length: int = 0

        for node in graph.nodes:
            if length[node] > overall_best_length:
                overall_best_length = length[node]
                overall_best_path = [node]
                hop = next_hop[node]
                while hop is not None:
                    overall_best_path.append(hop)
                    hop = next_hop[hop]

        return overall_best_path, overall_best_length


__all__ = ["GraphAlgorithms"]
