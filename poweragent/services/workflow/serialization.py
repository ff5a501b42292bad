"""JSON wire contract shared by the graph editor and the runtime.

Nodes travel as ``{id, type, position, data: {label, type, description,
config}}`` and edges as ``{id, source, target, sourceHandle, data:
{label}}``; config keys are camelCase. ``deserialize_workflow`` accepts
exactly what ``serialize_workflow`` produces plus the editor's extra
canvas keys (``selected``, ``width``...), which are ignored.

The editor also keeps its own ``label`` and ``description`` copies inside
``config``. Those keys survive a round trip, and a node missing either
one in ``data`` falls back to the ``config`` copy.

Example:
    >>> payload = serialize_workflow(workflow)
    >>> deserialize_workflow(payload) == workflow
    True
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from poweragent.schemas.plan import ExecutionPlan
from poweragent.schemas.workflow import NODE_MODELS, NodeBase, Workflow, WorkflowEdge
from poweragent.services.workflow.exceptions import (
    MalformedWorkflowError,
    UnsupportedNodeKindError,
)

# Node ``type`` used by the editor's canvas renderer; the real kind then
# lives in ``data.type``.
RENDERER_NODE_TYPE = "workflow"

# =============================================================================
# Write
# =============================================================================


def serialize_node(node: NodeBase) -> dict[str, Any]:
    """Serialize a node to its wire shape."""
    return {
        "id": node.id,
        "type": str(node.kind),
        "position": {"x": node.position.x, "y": node.position.y},
        "data": {
            "label": node.label,
            "type": str(node.kind),
            "description": node.description,
            "config": node.config.model_dump(mode="json", by_alias=True),
        },
    }


def serialize_edge(edge: WorkflowEdge) -> dict[str, Any]:
    """Serialize an edge to its wire shape."""
    return {
        "id": edge.id,
        "source": edge.source,
        "target": edge.target,
        "sourceHandle": str(edge.source_handle),
        "data": {"label": edge.label},
    }


def serialize_workflow(workflow: Workflow) -> dict[str, Any]:
    """Serialize a workflow to a JSON-compatible dict."""
    return {
        "nodes": [serialize_node(node) for node in workflow.nodes],
        "edges": [serialize_edge(edge) for edge in workflow.edges],
    }


def serialize_plan(plan: ExecutionPlan) -> dict[str, Any]:
    """Serialize an execution plan with camelCase keys."""
    return plan.model_dump(mode="json", by_alias=True)


def dumps_workflow(workflow: Workflow, *, indent: int | None = None) -> str:
    """Serialize a workflow to JSON text."""
    return json.dumps(serialize_workflow(workflow), indent=indent, ensure_ascii=False)


def workflow_digest(workflow: Workflow) -> str:
    """Stable SHA-256 content digest of a workflow.

    Computed over canonical JSON (sorted keys, no whitespace), so equal
    workflows always share a digest.
    """
    canonical = json.dumps(
        serialize_workflow(workflow),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


# =============================================================================
# Read
# =============================================================================


def _read_node(raw: Any, index: int) -> dict[str, Any]:
    """Map one wire node onto the internal node fields."""
    if not isinstance(raw, Mapping):
        raise MalformedWorkflowError(f"node at index {index} is not an object")

    data = raw.get("data") or {}
    if not isinstance(data, Mapping):
        raise MalformedWorkflowError(f"node at index {index} has non-object 'data'")

    kind = raw.get("type")
    if kind == RENDERER_NODE_TYPE:
        kind = data.get("type")
    if kind is None:
        raise MalformedWorkflowError(f"node at index {index} has no 'type'")
    if not isinstance(kind, str) or kind not in NODE_MODELS:
        raise UnsupportedNodeKindError(kind, raw.get("id"))

    data_kind = data.get("type")
    if data_kind is not None and data_kind != kind:
        raise MalformedWorkflowError(
            f"node {raw.get('id')!r} has type {kind!r} but data.type {data_kind!r}"
        )

    config = data.get("config") or {}
    # The editor also keeps label and description inside config
    config_text = config if isinstance(config, Mapping) else {}

    return {
        "kind": kind,
        "id": raw.get("id"),
        "position": raw.get("position") or {},
        "label": data.get("label") or config_text.get("label") or "",
        "description": data.get("description") or config_text.get("description"),
        "config": config,
    }


def _read_edge(raw: Any, index: int) -> dict[str, Any]:
    """Map one wire edge onto the internal edge fields."""
    if not isinstance(raw, Mapping):
        raise MalformedWorkflowError(f"edge at index {index} is not an object")

    data = raw.get("data") or {}
    if not isinstance(data, Mapping):
        raise MalformedWorkflowError(f"edge at index {index} has non-object 'data'")

    return {
        "id": raw.get("id"),
        "source": raw.get("source"),
        "target": raw.get("target"),
        "source_handle": raw.get("sourceHandle"),
        "label": data.get("label") or raw.get("label") or "",
    }


def deserialize_workflow(payload: Mapping[str, Any]) -> Workflow:
    """Parse a wire-format workflow.

    Args:
        payload: Decoded JSON object with ``nodes`` and ``edges`` lists.

    Returns:
        The parsed Workflow. Structure is not validated here; use the
        validator for that.

    Raises:
        UnsupportedNodeKindError: If a node's ``type`` is not a known kind.
        MalformedWorkflowError: If the payload does not match the wire shape.
    """
    if not isinstance(payload, Mapping):
        raise MalformedWorkflowError("workflow must be a JSON object")

    raw_nodes = payload.get("nodes", [])
    raw_edges = payload.get("edges", [])
    if not isinstance(raw_nodes, list):
        raise MalformedWorkflowError("'nodes' must be a list")
    if not isinstance(raw_edges, list):
        raise MalformedWorkflowError("'edges' must be a list")

    nodes = [_read_node(raw, index) for index, raw in enumerate(raw_nodes)]
    edges = [_read_edge(raw, index) for index, raw in enumerate(raw_edges)]

    try:
        return Workflow.model_validate({"nodes": nodes, "edges": edges})
    except PydanticValidationError as exc:
        errors = json.loads(exc.json(include_url=False))
        raise MalformedWorkflowError(
            f"{exc.error_count()} invalid field(s)", errors=errors
        ) from exc


def loads_workflow(text: str | bytes) -> Workflow:
    """Parse a wire-format workflow from JSON text.

    Raises:
        MalformedWorkflowError: If ``text`` is not valid JSON or not a
            valid workflow.
        UnsupportedNodeKindError: If a node's ``type`` is not a known kind.
    """
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedWorkflowError(f"invalid JSON: {exc.msg}") from exc
    return deserialize_workflow(payload)


__all__ = [
    "RENDERER_NODE_TYPE",
    "deserialize_workflow",
    "dumps_workflow",
    "loads_workflow",
    "serialize_edge",
    "serialize_node",
    "serialize_plan",
    "serialize_workflow",
    "workflow_digest",
]
