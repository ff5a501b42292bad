"""Execution order resolution for workflow graphs.

Turns a workflow into an ExecutionPlan: a deterministic,
dependency-ordered list of steps for an external runtime.

Resolution rules:
- Kahn's topological sort, level by level; within a level nodes are
  ordered top-to-bottom, then left-to-right, then by ID.
- Both arms of a conditional are emitted. Steps fed only by one arm
  carry ``branch`` and ``branch_of`` so the runtime can skip the arm
  that did not fire.
- Merge steps join with ``any`` (only one arm fires); every other step
  joins with ``all``.
- A cycle that avoids every conditional can never terminate and fails
  with CyclicGraphError. Cycles through a conditional are retry loops:
  their back edges are reported as ``loops_to`` instead of dependencies.
"""

from __future__ import annotations

import logging
from collections import defaultdict

from poweragent.schemas.plan import ExecutionPlan, JoinPolicy, PlanStep
from poweragent.schemas.validation import ValidationOptions
from poweragent.schemas.workflow import EdgeHandle, NodeBase, NodeKind, Workflow
from poweragent.services.workflow.algorithms import GraphAlgorithms
from poweragent.services.workflow.exceptions import (
    CyclicGraphError,
    WorkflowInvalidError,
)
from poweragent.services.workflow.graph import Graph, build_workflow_graph
from poweragent.services.workflow.validator import WorkflowValidator

logger = logging.getLogger(__name__)

_ARM_HANDLES = {EdgeHandle.TRUE.value, EdgeHandle.FALSE.value}


class ExecutionOrderResolver:
    """Resolves workflows into execution plans.

    Example:
        >>> resolver = ExecutionOrderResolver()
        >>> plan = resolver.resolve(workflow)
        >>> plan.order
        ['start', 'delegate_1', 'end']
    """

    def __init__(
        self,
        *,
        validate: bool = True,
        options: ValidationOptions | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            validate: Run the structural validator before resolving.
                Callers that already hold a valid result may skip it.
            options: Options for that validation run.
        """
        self.validate = validate
        self.options = options

    def resolve(self, workflow: Workflow) -> ExecutionPlan:
        """Resolve the execution order of ``workflow``.

        Unconditional cycles take precedence over validation errors: they
        are checked first, so a looping draft reports the cycle.

        Args:
            workflow: The workflow to resolve.

        Returns:
            ExecutionPlan with steps in execution order.

        Raises:
            CyclicGraphError: If a cycle passes through no conditional node.
            WorkflowInvalidError: If validation is enabled and fails.
        """
        graph = build_workflow_graph(workflow)
        nodes: dict[str, NodeBase] = {}
        for node in workflow.nodes:
            nodes.setdefault(node.id, node)

        self._check_unconditional_cycles(graph, nodes)

        if self.validate:
            result = WorkflowValidator(self.options).validate(workflow)
            if not result.is_valid:
                logger.info(
                    "Refusing to resolve invalid workflow",
                    extra={"context": {"error_codes": result.error_codes}},
                )
                raise WorkflowInvalidError(result.errors)

        def sort_key(node_id: str) -> tuple[float, float, str]:
            return nodes[node_id].sort_key

        start_ids = [node.id for node in workflow.nodes_of_kind(NodeKind.START)]

        # Break retry loops so the remaining graph is a DAG
        back_edges = GraphAlgorithms.find_back_edges(graph, start_ids, sort_key)
        forward = graph.copy()
        loops_to: defaultdict[str, list[str]] = defaultdict(list)
        for source, target in back_edges:
            forward.remove_edges(source, target)
            loops_to[source].append(target)

        levels = GraphAlgorithms.topological_sort_levels(forward, sort_key)
        if levels is None:
            # Not expected once back edges are removed
            cycle = GraphAlgorithms.detect_cycle(forward) or []
            raise CyclicGraphError(cycle)

        back_edge_set = set(back_edges)
        position = {
            node_id: index
            for index, node_id in enumerate(n for level in levels for n in level)
        }

        steps: list[PlanStep] = []
        for level_index, level in enumerate(levels):
            for node_id in level:
                node = nodes[node_id]
                depends_on = sorted(
                    set(forward.get_predecessors(node_id)),
                    key=position.__getitem__,
                )
                branch_of, branch = self._gating_arm(
                    workflow, nodes, node_id, back_edge_set
                )
                steps.append(
                    PlanStep(
                        node_id=node_id,
                        kind=node.kind,
                        depends_on=depends_on,
                        join_policy=(
                            JoinPolicy.ANY if node.kind == NodeKind.MERGE else JoinPolicy.ALL
                        ),
                        branch=branch,
                        branch_of=branch_of,
                        level=level_index,
                        loops_to=sorted(
                            dict.fromkeys(loops_to.get(node_id, [])),
                            key=position.__getitem__,
                        ),
                    )
                )

        critical_path, _ = GraphAlgorithms.get_critical_path(forward)

        plan = ExecutionPlan(
            entry_node_id=start_ids[0] if start_ids else None,
            steps=steps,
            total_levels=len(levels),
            max_parallel_steps=max((len(level) for level in levels), default=0),
            critical_path=critical_path,
        )

        logger.info(
            "Resolved execution plan",
            extra={
                "context": {
                    "step_count": len(steps),
                    "total_levels": plan.total_levels,
                    "loop_edges": len(back_edges),
                }
            },
        )
        return plan

    # ==========================================================================
    # Private Helper Methods
    # ==========================================================================

    @staticmethod
    def _check_unconditional_cycles(
        graph: Graph[str],
        nodes: dict[str, NodeBase],
    ) -> None:
        """Raise CyclicGraphError for a cycle that avoids every conditional.

        Removing all conditional nodes leaves exactly the cycles with no
        branch choice to exit through.
        """
        plain = graph.subgraph(
            node_id for node_id, node in nodes.items() if node.kind != NodeKind.CONDITIONAL
        )
        cycle = GraphAlgorithms.detect_cycle(plain)
        if cycle:
            logger.warning(
                "Unconditional cycle detected",
                extra={"context": {"cycle_path": cycle}},
            )
            raise CyclicGraphError(cycle)

    @staticmethod
    def _gating_arm(
        workflow: Workflow,
        nodes: dict[str, NodeBase],
        node_id: str,
        back_edges: set[tuple[str, str]],
    ) -> tuple[str | None, bool | None]:
        """Return ``(conditional_id, branch)`` if one arm alone feeds ``node_id``.

        A step is tagged only when every forward edge into it leaves the
        same conditional through the same handle.
        """
        arms: set[tuple[str, str]] = set()
        for edge in workflow.incoming(node_id):
            if edge.source == node_id or edge.source not in nodes:
                continue
            if (edge.source, edge.target) in back_edges:
                continue
            source = nodes[edge.source]
            if source.kind != NodeKind.CONDITIONAL or edge.source_handle not in _ARM_HANDLES:
                return None, None
            arms.add((source.id, str(edge.source_handle)))

        if len(arms) != 1:
            return None, None

        conditional_id, handle = arms.pop()
        return conditional_id, handle == EdgeHandle.TRUE.value


def resolve_order(
    workflow: Workflow,
    *,
    validate: bool = True,
    options: ValidationOptions | None = None,
) -> ExecutionPlan:
    """Resolve ``workflow`` into an ExecutionPlan.

    Example:
        >>> plan = resolve_order(workflow)
        >>> [step.node_id for step in plan.steps]
        ['start', 'delegate_1', 'end']

    Raises:
        CyclicGraphError: If a cycle passes through no conditional node.
        WorkflowInvalidError: If ``validate`` is set and validation fails.
    """
    return ExecutionOrderResolver(validate=validate, options=options).resolve(workflow)


__all__ = ["ExecutionOrderResolver", "resolve_order"]
