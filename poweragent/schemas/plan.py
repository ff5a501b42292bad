"""Pydantic schemas for the resolved execution plan.

The plan is consumed by an external runtime that dispatches delegate
steps, evaluates conditionals, and runs synthesis. Field names are
camelCase on the wire (``nodeId``, ``dependsOn``, ``joinPolicy``).
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from poweragent.schemas.base import WireSchema
from poweragent.schemas.workflow import NodeKind


class JoinPolicy(str, Enum):
    """How a step waits on its dependencies.

    ALL: every dependency must complete (plain sequential steps).
    ANY: one completed dependency suffices (merge nodes, since only one
         conditional arm fires).
    """

    ALL = "all"
    ANY = "any"

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


class PlanStep(WireSchema):
    """One node in the execution plan."""

    node_id: str = Field(..., description="Node to execute")
    kind: NodeKind = Field(..., description="Node kind")
    depends_on: list[str] = Field(
        default_factory=list,
        description="Node IDs that must complete first, in plan order",
    )
    join_policy: JoinPolicy = Field(
        default=JoinPolicy.ALL.value,
        description="Whether all or any dependencies must complete",
    )
    branch: bool | None = Field(
        default=None,
        description="Conditional arm gating this step, if any",
    )
    branch_of: str | None = Field(
        default=None,
        description="Conditional node whose arm gates this step",
    )
    level: int = Field(
        ...,
        ge=0,
        description="Resolution depth (0-based)",
    )
    loops_to: list[str] = Field(
        default_factory=list,
        description="Earlier steps this step loops back to (retry edges)",
    )


class ExecutionPlan(WireSchema):
    """Deterministic, dependency-ordered step sequence."""

    entry_node_id: str | None = Field(
        default=None,
        description="The start node",
    )
    steps: list[PlanStep] = Field(
        default_factory=list,
        description="Steps in execution order",
    )
    total_levels: int = Field(
        default=0,
        ge=0,
        description="Number of resolution levels",
    )
    max_parallel_steps: int = Field(
        default=0,
        ge=0,
        description="Largest number of steps sharing one level",
    )
    critical_path: list[str] = Field(
        default_factory=list,
        description="Longest dependency chain",
    )

    @property
    def order(self) -> list[str]:
        """Node IDs in execution order."""
        return [step.node_id for step in self.steps]

    def get_step(self, node_id: str) -> PlanStep | None:
        """Return the step for ``node_id``, or None."""
        return next((s for s in self.steps if s.node_id == node_id), None)


__all__ = [
    "ExecutionPlan",
    "JoinPolicy",
    "PlanStep",
]
