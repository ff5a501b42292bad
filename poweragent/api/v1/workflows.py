"""Workflow API Router.

This module provides REST API endpoints for validating workflows,
resolving them into execution plans, and fetching the builder's
workflow templates. Workflows are posted in the editor's wire format.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, HTTPException, Query

from poweragent.api.deps import ValidationCacheDep  # noqa: TC001 - Required at runtime for FastAPI
from poweragent.core.logging import LogContext, get_logger
from poweragent.schemas.base import ErrorResponse
from poweragent.schemas.plan import ExecutionPlan
from poweragent.schemas.validation import ValidationOptions, ValidationResult
from poweragent.schemas.workflow import Workflow
from poweragent.services.workflow import (
    CyclicGraphError,
    MalformedWorkflowError,
    UnsupportedNodeKindError,
    WorkflowError,
    WorkflowInvalidError,
    default_workflow,
    deserialize_workflow,
    resolve_order,
    sample_workflow,
    serialize_workflow,
    validate,
    workflow_digest,
)

logger = get_logger(__name__)

router = APIRouter()

WorkflowPayload = Annotated[
    dict[str, Any],
    Body(
        description="Workflow in editor wire format ({nodes, edges})",
        examples=[{"nodes": [], "edges": []}],
    ),
]


# =============================================================================
# Exception to HTTP Status Mapping
# =============================================================================


def _http_error(exc: WorkflowError, status_code: int) -> HTTPException:
    """Wrap a workflow exception in an HTTPException with an ErrorResponse body."""
    return HTTPException(
        status_code=status_code,
        detail=ErrorResponse(
            error=exc.error_code,
            message=exc.message,
            details=exc.details,
        ).model_dump(),
    )


def _parse_workflow(payload: dict[str, Any]) -> Workflow:
    """Parse the request body, mapping parse failures to 422."""
    try:
        return deserialize_workflow(payload)
    except (UnsupportedNodeKindError, MalformedWorkflowError) as e:
        raise _http_error(e, 422) from e


# =============================================================================
# Validation & Planning Endpoints
# =============================================================================


@router.post(
    "/validate",
    response_model=ValidationResult,
    summary="Validate workflow",
    description="Check a workflow's structure and report every problem found.",
    responses={
        200: {"description": "Validation completed (see isValid)"},
        422: {"model": ErrorResponse, "description": "Unparseable workflow"},
    },
)
async def validate_workflow(
    payload: WorkflowPayload,
    cache: ValidationCacheDep,
    include_warnings: Annotated[
        bool,
        Query(description="Include non-blocking warnings"),
    ] = True,
) -> ValidationResult:
    """Validate a workflow.

    Results are cached by workflow content digest; a cache hit is marked
    with ``cached: true``.

    Args:
        payload: Workflow in wire format.
        cache: Validation result cache (injected).
        include_warnings: Whether to include warnings.

    Returns:
        ValidationResult. An invalid workflow is still a 200 response.

    Raises:
        HTTPException: 422 if the payload cannot be parsed.
    """
    workflow = _parse_workflow(payload)
    digest = workflow_digest(workflow)
    cache_key = digest if include_warnings else f"{digest}:errors-only"

    cached = await cache.get(cache_key)
    if cached is not None:
        return ValidationResult.model_validate(cached).model_copy(update={"cached": True})

    result = validate(workflow, ValidationOptions(include_warnings=include_warnings))
    await cache.set(cache_key, result.model_dump(mode="json"))
    return result


@router.post(
    "/plan",
    response_model=ExecutionPlan,
    summary="Resolve execution plan",
    description="Validate a workflow and resolve it into an ordered execution plan.",
    responses={
        200: {"description": "Plan resolved"},
        409: {"model": ErrorResponse, "description": "Unconditional cycle"},
        422: {"model": ErrorResponse, "description": "Invalid or unparseable workflow"},
    },
)
async def plan_workflow(payload: WorkflowPayload) -> ExecutionPlan:
    """Resolve a workflow into an execution plan.

    Args:
        payload: Workflow in wire format.

    Returns:
        ExecutionPlan with steps in execution order.

    Raises:
        HTTPException: 422 if the workflow is unparseable or invalid,
            409 if it contains an unconditional cycle.
    """
    workflow = _parse_workflow(payload)

    with LogContext(logger, workflow_digest=workflow_digest(workflow), operation="plan"):
        try:
            return resolve_order(workflow)
        except CyclicGraphError as e:
            logger.info(
                "Plan rejected: unconditional cycle",
                extra={"context": {"cycle_path": e.cycle_path}},
            )
            raise _http_error(e, 409) from e
        except WorkflowInvalidError as e:
            logger.info("Plan rejected: invalid workflow")
            raise _http_error(e, 422) from e


# =============================================================================
# Template Endpoints
# =============================================================================


@router.get(
    "/templates/default",
    summary="Default workflow",
    description="The Start/End canvas a new agent starts with.",
)
async def get_default_template() -> dict[str, Any]:
    """Return the default workflow in wire format."""
    return serialize_workflow(default_workflow())


@router.get(
    "/templates/sample",
    summary="Sample workflow",
    description="Delegate to a sub-agent, check the result, and respond.",
)
async def get_sample_template(
    agent_id: Annotated[
        str,
        Query(min_length=1, description="Sub-agent receiving the delegated task"),
    ],
    agent_name: Annotated[
        str,
        Query(min_length=1, description="Sub-agent display name"),
    ],
) -> dict[str, Any]:
    """Return the sample workflow in wire format."""
    return serialize_workflow(sample_workflow(agent_id, agent_name))


__all__ = ["router"]
