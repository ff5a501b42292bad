"""Pydantic schemas for workflow graph validation.

Validation failures are data, not exceptions: every problem found is
reported so the editor can highlight all offending nodes at once.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from poweragent.core.config import settings
from poweragent.schemas.base import WireSchema

# =============================================================================
# Validation Enums
# =============================================================================


class ValidationErrorCode(str, Enum):
    """Blocking validation error codes."""

    # Start/end structure
    MISSING_START = "MISSING_START"
    MULTIPLE_START = "MULTIPLE_START"
    MISSING_END = "MISSING_END"

    # Connectivity
    UNREACHABLE_NODE = "UNREACHABLE_NODE"
    DEAD_END = "DEAD_END"

    # Branching
    INCOMPLETE_CONDITIONAL = "INCOMPLETE_CONDITIONAL"
    INVALID_HANDLE = "INVALID_HANDLE"

    # Edge integrity
    SELF_LOOP = "SELF_LOOP"
    DANGLING_EDGE = "DANGLING_EDGE"

    # Identity
    DUPLICATE_NODE_ID = "DUPLICATE_NODE_ID"
    DUPLICATE_EDGE_ID = "DUPLICATE_EDGE_ID"

    # Limits
    GRAPH_TOO_LARGE = "GRAPH_TOO_LARGE"


class ValidationWarningCode(str, Enum):
    """Non-blocking warning codes."""

    START_HAS_INCOMING = "START_HAS_INCOMING"
    END_HAS_OUTGOING = "END_HAS_OUTGOING"
    DELEGATE_MISSING_AGENT = "DELEGATE_MISSING_AGENT"
    DELEGATE_MISSING_TASK = "DELEGATE_MISSING_TASK"
    CONDITIONAL_MISSING_VARIABLE = "CONDITIONAL_MISSING_VARIABLE"
    CONDITIONAL_MISSING_VALUE = "CONDITIONAL_MISSING_VALUE"
    SYNTHESIZE_MISSING_INSTRUCTIONS = "SYNTHESIZE_MISSING_INSTRUCTIONS"


# =============================================================================
# Validation Options
# =============================================================================


class ValidationOptions(WireSchema):
    """Options for a validation run.

    Size limits default to WORKFLOW_MAX_NODES / WORKFLOW_MAX_EDGES.
    """

    include_warnings: bool = Field(
        default=True,
        description="Include non-blocking warnings",
    )
    max_nodes: int = Field(
        default_factory=lambda: settings.WORKFLOW_MAX_NODES,
        ge=1,
        le=10000,
        description="Maximum allowed nodes",
    )
    max_edges: int = Field(
        default_factory=lambda: settings.WORKFLOW_MAX_EDGES,
        ge=0,
        le=50000,
        description="Maximum allowed edges",
    )


# =============================================================================
# Validation Result Schemas
# =============================================================================


class ValidationError(WireSchema):
    """Single blocking validation error.

    ``details.node_positions`` carries canvas coordinates of the
    affected nodes for highlighting.
    """

    code: ValidationErrorCode = Field(
        ...,
        description="Machine-readable error code",
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
    )
    node_ids: list[str] = Field(
        default_factory=list,
        description="Affected node IDs",
    )
    edge_ids: list[str] = Field(
        default_factory=list,
        description="Affected edge IDs",
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional error context",
    )


class ValidationWarning(WireSchema):
    """Single non-blocking validation warning."""

    code: ValidationWarningCode = Field(
        ...,
        description="Warning code",
    )
    message: str = Field(
        ...,
        description="Human-readable warning message",
    )
    node_id: str | None = Field(
        default=None,
        description="Affected node ID if applicable",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested fix",
    )
    position_x: float | None = Field(
        default=None,
        description="Node X coordinate for visualization",
    )
    position_y: float | None = Field(
        default=None,
        description="Node Y coordinate for visualization",
    )


class ValidationResult(WireSchema):
    """Complete validation result.

    ``is_valid`` is True exactly when ``errors`` is empty; warnings
    never affect validity.
    """

    is_valid: bool = Field(
        ...,
        description="Whether the workflow passed validation",
    )
    validated_at: datetime = Field(
        ...,
        description="Validation timestamp",
    )
    errors: list[ValidationError] = Field(
        default_factory=list,
        description="Blocking validation errors",
    )
    warnings: list[ValidationWarning] = Field(
        default_factory=list,
        description="Non-blocking warnings",
    )
    node_count: int = Field(default=0, ge=0, description="Number of nodes")
    edge_count: int = Field(default=0, ge=0, description="Number of edges")
    validation_duration_ms: float = Field(
        default=0.0,
        ge=0.0,
        description="Validation duration in milliseconds",
    )
    workflow_digest: str | None = Field(
        default=None,
        description="Content digest of the validated workflow",
    )
    cached: bool = Field(
        default=False,
        description="Whether the result came from the cache",
    )

    @property
    def error_codes(self) -> list[str]:
        """Error codes in report order."""
        return [ValidationErrorCode(e.code).value for e in self.errors]

    def errors_for(self, code: ValidationErrorCode | str) -> list[ValidationError]:
        """Return errors with ``code`` in report order."""
        return [e for e in self.errors if e.code == code]


__all__ = [
    "ValidationError",
    "ValidationErrorCode",
    "ValidationOptions",
    "ValidationResult",
    "ValidationWarning",
    "ValidationWarningCode",
]
