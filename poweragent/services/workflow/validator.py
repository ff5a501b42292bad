"""Structural validation for workflow graphs.

This module provides the WorkflowValidator service. Every check runs
independently and every problem is collected, so the editor can
highlight all offending nodes at once instead of fixing them one by one.

Cycles are not rejected here. Retry loops through a conditional are a
legitimate pattern; the execution order resolver decides which cycles
are fatal.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from datetime import UTC, datetime
from typing import TypeAlias

from poweragent.schemas.validation import (
    ValidationError,
    ValidationErrorCode,
    ValidationOptions,
    ValidationResult,
    ValidationWarning,
    ValidationWarningCode,
)
from poweragent.schemas.workflow import (
    ConditionOperator,
    EdgeHandle,
    NodeBase,
    NodeKind,
    Workflow,
)
from poweragent.services.workflow.algorithms import GraphAlgorithms
from poweragent.services.workflow.graph import Graph, build_workflow_graph
from poweragent.services.workflow.serialization import workflow_digest

logger = logging.getLogger(__name__)

_Graph: TypeAlias = "Graph[str]"
_Positions: TypeAlias = dict[str, dict[str, float]]

# Operators that compare against ``config.value``
_VALUE_OPERATORS = {ConditionOperator.EQUALS.value, ConditionOperator.CONTAINS.value}


class WorkflowValidator:
    """Stateless structural validator for workflows.

    Example:
        >>> validator = WorkflowValidator()
        >>> result = validator.validate(workflow)
        >>> if not result.is_valid:
        ...     print(result.error_codes)
    """

    def __init__(self, options: ValidationOptions | None = None) -> None:
        """Initialize the validator.

        Args:
            options: Validation settings. Defaults read size limits from
                the application settings.
        """
        self.options = options or ValidationOptions()

    def validate(self, workflow: Workflow) -> ValidationResult:
        """Validate the entire workflow graph.

        Args:
            workflow: The workflow to check.

        Returns:
            ValidationResult with every error and (optionally) warning
            found. ``is_valid`` is True exactly when there are no errors.
        """
        started = time.perf_counter()
        errors: list[ValidationError] = []
        warnings: list[ValidationWarning] = []

        graph = build_workflow_graph(workflow)
        positions = self._build_node_positions_map(workflow)

        self._validate_size_limits(workflow, errors)
        self._validate_identity(workflow, positions, errors)
        self._validate_edges(workflow, positions, errors)
        self._validate_start_end(workflow, errors)
        self._validate_connectivity(workflow, graph, positions, errors)
        self._validate_conditionals(workflow, positions, errors)

        if self.options.include_warnings:
            self._collect_warnings(workflow, warnings)

        duration_ms = (time.perf_counter() - started) * 1000

        result = ValidationResult(
            is_valid=len(errors) == 0,
            validated_at=datetime.now(UTC),
            errors=errors,
            warnings=warnings,
            node_count=len(workflow.nodes),
            edge_count=len(workflow.edges),
            validation_duration_ms=duration_ms,
            workflow_digest=workflow_digest(workflow),
        )

        logger.debug(
            "Validated workflow",
            extra={
                "context": {
                    "digest": result.workflow_digest,
                    "is_valid": result.is_valid,
                    "error_codes": result.error_codes,
                    "warning_count": len(warnings),
                    "duration_ms": round(duration_ms, 3),
                }
            },
        )
        return result

    # ==========================================================================
    # Checks
    # ==========================================================================

    def _validate_size_limits(
        self,
        workflow: Workflow,
        errors: list[ValidationError],
    ) -> None:
        """Validate graph size against configured limits."""
        if len(workflow.nodes) > self.options.max_nodes:
            errors.append(
                ValidationError(
                    code=ValidationErrorCode.GRAPH_TOO_LARGE,
                    message="Workflow exceeds maximum node limit",
                    details={
                        "current": len(workflow.nodes),
                        "limit": self.options.max_nodes,
                        "metric": "nodes",
                    },
                )
            )

        if len(workflow.edges) > self.options.max_edges:
            errors.append(
                ValidationError(
                    code=ValidationErrorCode.GRAPH_TOO_LARGE,
                    message="Workflow exceeds maximum edge limit",
                    details={
                        "current": len(workflow.edges),
                        "limit": self.options.max_edges,
                        "metric": "edges",
                    },
                )
            )

    def _validate_identity(
        self,
        workflow: Workflow,
        positions: _Positions,
        errors: list[ValidationError],
    ) -> None:
        """Report node and edge IDs used more than once."""
        node_counts = Counter(node.id for node in workflow.nodes)
        for node_id, count in node_counts.items():
            if count > 1:
                errors.append(
                    ValidationError(
                        code=ValidationErrorCode.DUPLICATE_NODE_ID,
                        message=f"Node ID '{node_id}' is used by {count} nodes",
                        node_ids=[node_id],
                        details={
                            "count": count,
                            "node_positions": self._positions_for([node_id], positions),
                        },
                    )
                )

        edge_counts = Counter(edge.id for edge in workflow.edges)
        for edge_id, count in edge_counts.items():
            if count > 1:
                errors.append(
                    ValidationError(
                        code=ValidationErrorCode.DUPLICATE_EDGE_ID,
                        message=f"Edge ID '{edge_id}' is used by {count} edges",
                        edge_ids=[edge_id],
                        details={"count": count, "node_positions": {}},
                    )
                )

    def _validate_edges(
        self,
        workflow: Workflow,
        positions: _Positions,
        errors: list[ValidationError],
    ) -> None:
        """Validate edge integrity: endpoints, self-loops, handles."""
        nodes_by_id = {node.id: node for node in reversed(workflow.nodes)}

        for edge in workflow.edges:
            missing = [
                node_id
                for node_id in dict.fromkeys((edge.source, edge.target))
                if node_id not in nodes_by_id
            ]
            if missing:
                errors.append(
                    ValidationError(
                        code=ValidationErrorCode.DANGLING_EDGE,
                        message=f"Edge '{edge.id}' references missing node(s): "
                        f"{', '.join(missing)}",
                        edge_ids=[edge.id],
                        details={
                            "source": edge.source,
                            "target": edge.target,
                            "missing_node_ids": missing,
                            "node_positions": self._positions_for(
                                [edge.source, edge.target], positions
                            ),
                        },
                    )
                )

            if edge.source == edge.target:
                errors.append(
                    ValidationError(
                        code=ValidationErrorCode.SELF_LOOP,
                        message=f"Edge '{edge.id}' connects node '{edge.source}' "
                        "to itself",
                        node_ids=[edge.source],
                        edge_ids=[edge.id],
                        details={
                            "node_positions": self._positions_for([edge.source], positions),
                        },
                    )
                )

            source = nodes_by_id.get(edge.source)
            if (
                source is not None
                and source.kind != NodeKind.CONDITIONAL
                and edge.source_handle != EdgeHandle.DEFAULT
            ):
                errors.append(
                    ValidationError(
                        code=ValidationErrorCode.INVALID_HANDLE,
                        message=f"Edge '{edge.id}' uses handle '{edge.source_handle}' "
                        f"but only conditional nodes have true/false outputs",
                        node_ids=[source.id],
                        edge_ids=[edge.id],
                        details={
                            "source_handle": edge.source_handle,
                            "source_kind": source.kind,
                            "node_positions": self._positions_for([source.id], positions),
                        },
                    )
                )

    def _validate_start_end(
        self,
        workflow: Workflow,
        errors: list[ValidationError],
    ) -> None:
        """Require exactly one start node and at least one end node."""
        start_nodes = workflow.nodes_of_kind(NodeKind.START)
        if not start_nodes:
            errors.append(
                ValidationError(
                    code=ValidationErrorCode.MISSING_START,
                    message="Workflow must have a start node",
                    details={"node_positions": {}},
                )
            )
        elif len(start_nodes) > 1:
            start_ids = [node.id for node in start_nodes]
            errors.append(
                ValidationError(
                    code=ValidationErrorCode.MULTIPLE_START,
                    message=f"Workflow must have exactly one start node, "
                    f"found {len(start_nodes)}",
                    node_ids=start_ids,
                    details={
                        "count": len(start_nodes),
                        "node_positions": {
                            node.id: self._position_of(node) for node in start_nodes
                        },
                    },
                )
            )

        if not workflow.nodes_of_kind(NodeKind.END):
            errors.append(
                ValidationError(
                    code=ValidationErrorCode.MISSING_END,
                    message="Workflow must have at least one end node",
                    details={"node_positions": {}},
                )
            )

    def _validate_connectivity(
        self,
        workflow: Workflow,
        graph: _Graph,
        positions: _Positions,
        errors: list[ValidationError],
    ) -> None:
        """Report unreachable and dead-end nodes, one error per node."""
        start_ids = [node.id for node in workflow.nodes_of_kind(NodeKind.START)]
        end_ids = [node.id for node in workflow.nodes_of_kind(NodeKind.END)]

        # Without a start there is nothing to be reachable from
        if start_ids:
            unreachable = GraphAlgorithms.find_unreachable_from(graph, start_ids)
            for node_id in self._in_document_order(workflow, unreachable):
                node = workflow.get_node(node_id)
                if node is None or node.kind == NodeKind.START:
                    continue
                errors.append(
                    ValidationError(
                        code=ValidationErrorCode.UNREACHABLE_NODE,
                        message=f"Node '{node_id}' is not reachable from the start node",
                        node_ids=[node_id],
                        details={
                            "start_node_ids": start_ids,
                            "node_positions": self._positions_for([node_id], positions),
                        },
                    )
                )

        if end_ids:
            dead_ends = GraphAlgorithms.find_nodes_not_reaching(graph, end_ids)
            for node_id in self._in_document_order(workflow, dead_ends):
                node = workflow.get_node(node_id)
                if node is None or node.kind == NodeKind.END:
                    continue
                errors.append(
                    ValidationError(
                        code=ValidationErrorCode.DEAD_END,
                        message=f"Node '{node_id}' has no path to an end node",
                        node_ids=[node_id],
                        details={
                            "end_node_ids": end_ids,
                            "node_positions": self._positions_for([node_id], positions),
                        },
                    )
                )

    def _validate_conditionals(
        self,
        workflow: Workflow,
        positions: _Positions,
        errors: list[ValidationError],
    ) -> None:
        """Require exactly one true edge and one false edge per conditional."""
        seen: set[str] = set()
        for node in workflow.nodes_of_kind(NodeKind.CONDITIONAL):
            if node.id in seen:
                continue
            seen.add(node.id)

            outgoing = workflow.outgoing(node.id)
            handles = Counter(str(edge.source_handle) for edge in outgoing)
            true_count = handles.pop(EdgeHandle.TRUE.value, 0)
            false_count = handles.pop(EdgeHandle.FALSE.value, 0)

            if true_count == 1 and false_count == 1 and not handles:
                continue

            problems: list[str] = []
            if true_count != 1:
                problems.append(f"{true_count} 'true' edge(s)")
            if false_count != 1:
                problems.append(f"{false_count} 'false' edge(s)")
            if handles:
                problems.append(f"{sum(handles.values())} edge(s) on other handles")

            errors.append(
                ValidationError(
                    code=ValidationErrorCode.INCOMPLETE_CONDITIONAL,
                    message=f"Conditional '{node.id}' needs exactly one 'true' and "
                    f"one 'false' edge, found {' and '.join(problems)}",
                    node_ids=[node.id],
                    edge_ids=[edge.id for edge in outgoing],
                    details={
                        "true_edges": true_count,
                        "false_edges": false_count,
                        "other_edges": sum(handles.values()),
                        "node_positions": self._positions_for([node.id], positions),
                    },
                )
            )

    def _collect_warnings(
        self,
        workflow: Workflow,
        warnings: list[ValidationWarning],
    ) -> None:
        """Collect non-blocking configuration warnings."""
        incoming = {edge.target for edge in workflow.edges}
        outgoing = {edge.source for edge in workflow.edges}

        def warn(
            code: ValidationWarningCode,
            node: NodeBase,
            message: str,
            suggestion: str,
        ) -> None:
            warnings.append(
                ValidationWarning(
                    code=code,
                    message=message,
                    node_id=node.id,
                    suggestion=suggestion,
                    position_x=node.position.x,
                    position_y=node.position.y,
                )
            )

        for node in workflow.nodes:
            if node.kind == NodeKind.START and node.id in incoming:
                warn(
                    ValidationWarningCode.START_HAS_INCOMING,
                    node,
                    "Start node has incoming edges",
                    "Remove edges pointing into the start node",
                )
            elif node.kind == NodeKind.END and node.id in outgoing:
                warn(
                    ValidationWarningCode.END_HAS_OUTGOING,
                    node,
                    "End node has outgoing edges",
                    "Remove edges leaving the end node",
                )
            elif node.kind == NodeKind.DELEGATE:
                if not node.config.target_agent.strip():
                    warn(
                        ValidationWarningCode.DELEGATE_MISSING_AGENT,
                        node,
                        "Delegate node has no target agent",
                        "Select the sub-agent that should receive the task",
                    )
                if not node.config.task_template.strip():
                    warn(
                        ValidationWarningCode.DELEGATE_MISSING_TASK,
                        node,
                        "Delegate node has no task template",
                        "Describe the task, e.g. 'Process this request: "
                        "{{$json.userInput}}'",
                    )
            elif node.kind == NodeKind.CONDITIONAL:
                if not node.config.variable.strip():
                    warn(
                        ValidationWarningCode.CONDITIONAL_MISSING_VARIABLE,
                        node,
                        "Conditional node has no variable to check",
                        "Set the variable, e.g. '$json.result'",
                    )
                if node.config.operator in _VALUE_OPERATORS and not node.config.value:
                    warn(
                        ValidationWarningCode.CONDITIONAL_MISSING_VALUE,
                        node,
                        f"Conditional operator '{node.config.operator}' has no value "
                        "to compare against",
                        "Set a comparison value or use 'exists'/'empty'",
                    )
            elif node.kind == NodeKind.SYNTHESIZE and not node.config.instructions.strip():
                warn(
                    ValidationWarningCode.SYNTHESIZE_MISSING_INSTRUCTIONS,
                    node,
                    "Synthesize node has no instructions",
                    "Describe how the response should be formatted",
                )

    # ==========================================================================
    # Private Helper Methods
    # ==========================================================================

    @staticmethod
    def _position_of(node: NodeBase) -> dict[str, float]:
        return {"x": float(node.position.x), "y": float(node.position.y)}

    def _build_node_positions_map(self, workflow: Workflow) -> _Positions:
        """Map node ID to ``{"x", "y"}``; the first node wins on duplicate IDs."""
        positions: _Positions = {}
        for node in workflow.nodes:
            positions.setdefault(node.id, self._position_of(node))
        return positions

    @staticmethod
    def _positions_for(node_ids: list[str], positions: _Positions) -> _Positions:
        return {node_id: positions[node_id] for node_id in node_ids if node_id in positions}

    @staticmethod
    def _in_document_order(workflow: Workflow, node_ids: set[str]) -> list[str]:
        return list(dict.fromkeys(n.id for n in workflow.nodes if n.id in node_ids))


def validate(
    workflow: Workflow,
    options: ValidationOptions | None = None,
) -> ValidationResult:
    """Validate ``workflow`` with a fresh WorkflowValidator.

    Example:
        >>> result = validate(workflow)
        >>> result.is_valid
        True
    """
    return WorkflowValidator(options).validate(workflow)


__all__ = ["WorkflowValidator", "validate"]
