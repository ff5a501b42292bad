"""Workflow graph exceptions.

Validation problems are reported as data in ``ValidationResult``; the
exceptions here are for conditions the caller must act on:

- parse failures on the wire format (UnsupportedNodeKindError,
  MalformedWorkflowError)
- plan generation failures (WorkflowInvalidError, CyclicGraphError)
- editing lookups (NodeNotFoundError, EdgeNotFoundError,
  DuplicateConnectionError)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from poweragent.schemas.validation import ValidationError


class WorkflowError(Exception):
    """Base exception for workflow graph errors.

    Attributes:
        message: Human-readable error message.
        error_code: Machine-readable error code for API responses.
        details: Additional error context as dictionary.
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


# ============================================================================
# Parse Errors
# ============================================================================


class UnsupportedNodeKindError(WorkflowError):
    """Raised when a serialized node has an unknown ``type``.

    The whole workflow must be rejected; unknown nodes are never dropped.

    Attributes:
        kind: The unrecognized kind value.
        node_id: ID of the offending node, when present.
    """

    def __init__(self, kind: Any, node_id: Any = None) -> None:
        super().__init__(
            message=f"Unsupported node kind {kind!r} on node {node_id!r}",
            error_code="UNSUPPORTED_NODE_KIND",
            details={"kind": kind, "node_id": node_id},
        )
        self.kind = kind
        self.node_id = node_id


class MalformedWorkflowError(WorkflowError):
    """Raised when serialized workflow JSON does not match the wire shape.

    Attributes:
        reason: Short description of the failure.
        errors: Field-level errors from schema validation, if any.
    """

    def __init__(self, reason: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=f"Malformed workflow: {reason}",
            error_code="MALFORMED_WORKFLOW",
            details={"errors": errors or []},
        )
        self.reason = reason
        self.errors = errors or []


# ============================================================================
# Plan Errors
# ============================================================================


class WorkflowInvalidError(WorkflowError):
    """Raised when an execution plan is requested for an invalid workflow.

    Attributes:
        errors: Every validation error found.
    """

    def __init__(self, errors: list[ValidationError]) -> None:
        codes = sorted({str(e.code) for e in errors})
        super().__init__(
            message=f"Workflow failed validation with {len(errors)} error(s): "
            f"{', '.join(codes)}",
            error_code="WORKFLOW_INVALID",
            details={"errors": [e.model_dump(mode="json", by_alias=True) for e in errors]},
        )
        self.errors = errors


class CyclicGraphError(WorkflowError):
    """Raised when the workflow contains a cycle with no conditional exit.

    Attributes:
        cycle_path: Closed cycle path, first node repeated at the end.
    """

    def __init__(self, cycle_path: list[str]) -> None:
        cycle_str = " -> ".join(cycle_path)
        super().__init__(
            message=f"Unconditional cycle detected: {cycle_str}",
            error_code="CYCLIC_GRAPH",
            details={"cycle_path": list(cycle_path)},
        )
        self.cycle_path = cycle_path

    @property
    def node_ids(self) -> list[str]:
        """Distinct node IDs on the cycle, in cycle order."""
        return list(dict.fromkeys(self.cycle_path))


# ============================================================================
# Editing Errors
# ============================================================================


class NodeNotFoundError(WorkflowError):
    """Raised when an editing operation references a missing node."""

    def __init__(self, node_id: str) -> None:
        super().__init__(
            message=f"Node {node_id!r} not found",
            error_code="NODE_NOT_FOUND",
            details={"node_id": node_id},
        )
        self.node_id = node_id


class EdgeNotFoundError(WorkflowError):
    """Raised when an editing operation references a missing edge."""

    def __init__(self, edge_id: str) -> None:
        super().__init__(
            message=f"Edge {edge_id!r} not found",
            error_code="EDGE_NOT_FOUND",
            details={"edge_id": edge_id},
        )
        self.edge_id = edge_id


class DuplicateConnectionError(WorkflowError):
    """Raised when connecting the same source handle to the same target twice."""

    def __init__(self, source: str, target: str, source_handle: str) -> None:
        super().__init__(
            message=f"Connection {source}[{source_handle}] -> {target} already exists",
            error_code="DUPLICATE_CONNECTION",
            details={
                "source": source,
                "target": target,
                "source_handle": source_handle,
            },
        )
        self.source = source
        self.target = target
        self.source_handle = source_handle


__all__ = [
    "CyclicGraphError",
    "DuplicateConnectionError",
    "EdgeNotFoundError",
    "MalformedWorkflowError",
    "NodeNotFoundError",
    "UnsupportedNodeKindError",
    "WorkflowError",
    "WorkflowInvalidError",
]
