"""Pydantic schemas for the workflow service.

- base: BaseSchema / WireSchema configuration
- workflow: node/edge tagged union and constructors
- validation: validation options, errors, warnings, results
- plan: execution plan steps
"""

from poweragent.schemas.base import BaseSchema, ErrorResponse, WireSchema
from poweragent.schemas.plan import ExecutionPlan, JoinPolicy, PlanStep
from poweragent.schemas.validation import (
    ValidationError,
    ValidationErrorCode,
    ValidationOptions,
    ValidationResult,
    ValidationWarning,
    ValidationWarningCode,
)
from poweragent.schemas.workflow import (
    ConditionalConfig,
    ConditionalNode,
    ConditionOperator,
    DelegateConfig,
    DelegateNode,
    EdgeHandle,
    EmptyConfig,
    EndNode,
    MergeNode,
    NodeBase,
    NodeKind,
    Position,
    StartNode,
    SynthesizeConfig,
    SynthesizeNode,
    Workflow,
    WorkflowEdge,
    WorkflowNode,
    create_edge,
    create_node,
)

__all__ = [
    # Base
    "BaseSchema",
    "ErrorResponse",
    "WireSchema",
    # Workflow
    "ConditionOperator",
    "ConditionalConfig",
    "ConditionalNode",
    "DelegateConfig",
    "DelegateNode",
    "EdgeHandle",
    "EmptyConfig",
    "EndNode",
    "MergeNode",
    "NodeBase",
    "NodeKind",
    "Position",
    "StartNode",
    "SynthesizeConfig",
    "SynthesizeNode",
    "Workflow",
    "WorkflowEdge",
    "WorkflowNode",
    "create_edge",
    "create_node",
    # Validation
    "ValidationError",
    "ValidationErrorCode",
    "ValidationOptions",
    "ValidationResult",
    "ValidationWarning",
    "ValidationWarningCode",
    # Plan
    "ExecutionPlan",
    "JoinPolicy",
    "PlanStep",
]
