"""Workflow graph analysis package.

This package validates supervisor workflows and resolves them into
execution plans for an external runtime.

Components:
Graph core:
- Graph: Generic directed graph data structure
- GraphAlgorithms: Cycle detection, level topological sort, reachability

Services:
- WorkflowValidator: Structural validation reporting every problem
- ExecutionOrderResolver: Deterministic Kahn traversal into an ExecutionPlan
- Serialization: JSON wire contract shared with the editor and runtime
- WorkflowEditor: Explicit editing operations with an explicit save()
- Templates: Default canvas and sample workflow
- ValidationCache: Redis cache for validation results

Example:
    >>> from poweragent.services.workflow import loads_workflow, resolve_order, validate
    >>> workflow = loads_workflow(request_body)
    >>> result = validate(workflow)
    >>> if result.is_valid:
    ...     plan = resolve_order(workflow)
"""

# ============================================================================
# Graph Core
# ============================================================================

from poweragent.services.workflow.algorithms import GraphAlgorithms
from poweragent.services.workflow.graph import Graph, build_workflow_graph

# ============================================================================
# Exceptions
# ============================================================================

from poweragent.services.workflow.exceptions import (
    CyclicGraphError,
    DuplicateConnectionError,
    EdgeNotFoundError,
    MalformedWorkflowError,
    NodeNotFoundError,
    UnsupportedNodeKindError,
    WorkflowError,
    WorkflowInvalidError,
)

# ============================================================================
# Services
# ============================================================================

from poweragent.services.workflow.cache import ValidationCache, get_validation_cache
from poweragent.services.workflow.editor import WorkflowEditor
from poweragent.services.workflow.resolver import ExecutionOrderResolver, resolve_order
from poweragent.services.workflow.serialization import (
    deserialize_workflow,
    dumps_workflow,
    loads_workflow,
    serialize_plan,
    serialize_workflow,
    workflow_digest,
)
from poweragent.services.workflow.templates import default_workflow, sample_workflow
from poweragent.services.workflow.validator import WorkflowValidator, validate

__all__ = [
    # ============================================================================
    # Graph Core
    # ============================================================================
    "Graph",
    "GraphAlgorithms",
    "build_workflow_graph",
    # ============================================================================
    # Exceptions
    # ============================================================================
    "CyclicGraphError",
    "DuplicateConnectionError",
    "EdgeNotFoundError",
    "MalformedWorkflowError",
    "NodeNotFoundError",
    "UnsupportedNodeKindError",
    "WorkflowError",
    "WorkflowInvalidError",
    # ============================================================================
    # Services
    # ============================================================================
    # Validation
    "WorkflowValidator",
    "validate",
    # Resolution
    "ExecutionOrderResolver",
    "resolve_order",
    # Serialization
    "deserialize_workflow",
    "dumps_workflow",
    "loads_workflow",
    "serialize_plan",
    "serialize_workflow",
    "workflow_digest",
    # Editing
    "WorkflowEditor",
    # Templates
    "default_workflow",
    "sample_workflow",
    # Cache
    "ValidationCache",
    "get_validation_cache",
]
