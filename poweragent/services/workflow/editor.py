"""Editing adapter for workflows.

The graph editor mutates nodes and edges in response to user actions.
WorkflowEditor offers those mutations as explicit operations on an
in-memory workflow and persists through an explicit ``save()`` that
hands a snapshot to a caller-provided callback. Last write wins.

Example:
    >>> editor = WorkflowEditor(on_save=repository.store)
    >>> delegate = editor.add_node(NodeKind.DELEGATE, 250, 200)
    >>> editor.connect("start", delegate.id)
    >>> editor.connect(delegate.id, "end")
    >>> editor.save()
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel

from poweragent.schemas.plan import ExecutionPlan
from poweragent.schemas.validation import ValidationOptions, ValidationResult
from poweragent.schemas.workflow import (
    BRANCH_LABELS,
    EdgeHandle,
    NodeBase,
    NodeKind,
    Position,
    Workflow,
    WorkflowEdge,
    create_edge,
    create_node,
)
from poweragent.services.workflow.exceptions import (
    DuplicateConnectionError,
    EdgeNotFoundError,
    NodeNotFoundError,
)
from poweragent.services.workflow.resolver import resolve_order
from poweragent.services.workflow.serialization import serialize_workflow
from poweragent.services.workflow.templates import default_workflow
from poweragent.services.workflow.validator import validate

logger = logging.getLogger(__name__)

SaveCallback = Callable[[Workflow], None]


class WorkflowEditor:
    """Explicit editing operations over one workflow.

    The editor owns a private copy of the workflow. Every mutation marks
    it dirty; ``save()`` clears the flag.
    """

    def __init__(
        self,
        workflow: Workflow | None = None,
        on_save: SaveCallback | None = None,
    ) -> None:
        """Initialize the editor.

        Args:
            workflow: Workflow to edit. Starts from the default Start/End
                canvas when None or empty.
            on_save: Receives a deep snapshot on every ``save()``.
        """
        if workflow is None or not workflow.nodes:
            self._workflow = default_workflow()
        else:
            self._workflow = workflow.model_copy(deep=True)
        self._on_save = on_save
        self._dirty = False

    @property
    def workflow(self) -> Workflow:
        """The workflow being edited. Mutate it only through the editor."""
        return self._workflow

    @property
    def dirty(self) -> bool:
        """Whether there are unsaved changes."""
        return self._dirty

    # ==========================================================================
    # Nodes
    # ==========================================================================

    def add_node(
        self,
        kind: NodeKind | str,
        x: float = 0.0,
        y: float = 0.0,
        *,
        label: str | None = None,
        description: str | None = None,
        config: BaseModel | dict[str, Any] | None = None,
    ) -> NodeBase:
        """Drop a new node of ``kind`` onto the canvas at ``(x, y)``."""
        node = create_node(
            kind, x, y, label=label, description=description, config=config
        )
        self._workflow.nodes.append(node)
        self._touch("add_node", node_id=node.id)
        return node

    def remove_node(self, node_id: str) -> NodeBase:
        """Remove a node and every edge touching it.

        Raises:
            NodeNotFoundError: If the node does not exist.
        """
        node = self._require_node(node_id)
        self._workflow.nodes = [n for n in self._workflow.nodes if n.id != node_id]
        self._workflow.edges = [
            e for e in self._workflow.edges if node_id not in (e.source, e.target)
        ]
        self._touch("remove_node", node_id=node_id)
        return node

    def move_node(self, node_id: str, x: float, y: float) -> NodeBase:
        """Move a node to ``(x, y)``.

        Raises:
            NodeNotFoundError: If the node does not exist.
        """
        node = self._require_node(node_id)
        node.position = Position(x=x, y=y)
        self._touch("move_node", node_id=node_id)
        return node

    def configure_node(
        self,
        node_id: str,
        *,
        label: str | None = None,
        description: str | None = None,
        config: dict[str, Any] | None = None,
    ) -> NodeBase:
        """Update a node's label, description, and config.

        Empty label or description values keep the current text. Config
        keys (snake_case or camelCase) are merged onto the current config
        and validated against the node's config model.

        Raises:
            NodeNotFoundError: If the node does not exist.
            pydantic.ValidationError: If the merged config is invalid.
        """
        node = self._require_node(node_id)
        config_type = type(node.config)

        merged = node.config.model_dump()
        if config:
            merged.update(config_type.model_validate(config).model_dump(exclude_unset=True))

        updated = node.model_copy(
            update={
                "label": label or node.label,
                "description": description or node.description,
                "config": config_type.model_validate(merged),
            }
        )
        self._workflow.nodes = [
            updated if n is node else n for n in self._workflow.nodes
        ]
        self._touch("configure_node", node_id=node_id)
        return updated

    # ==========================================================================
    # Edges
    # ==========================================================================

    def connect(
        self,
        source: str,
        target: str,
        source_handle: EdgeHandle | str = EdgeHandle.DEFAULT,
    ) -> WorkflowEdge:
        """Connect ``source`` to ``target`` through ``source_handle``.

        Edges leaving a conditional's true/false handle are labeled
        "True"/"False".

        Raises:
            NodeNotFoundError: If either endpoint does not exist.
            DuplicateConnectionError: If the same connection already exists.
        """
        source_node = self._require_node(source)
        self._require_node(target)
        handle = EdgeHandle(source_handle).value

        for edge in self._workflow.edges:
            if edge.source == source and edge.target == target and edge.source_handle == handle:
                raise DuplicateConnectionError(source, target, handle)

        label = ""
        if source_node.kind == NodeKind.CONDITIONAL:
            label = BRANCH_LABELS.get(handle, "")

        edge = create_edge(source, target, handle, label=label)
        self._workflow.edges.append(edge)
        self._touch("connect", edge_id=edge.id)
        return edge

    def remove_edge(self, edge_id: str) -> WorkflowEdge:
        """Remove an edge.

        Raises:
            EdgeNotFoundError: If the edge does not exist.
        """
        edge = self._workflow.get_edge(edge_id)
        if edge is None:
            raise EdgeNotFoundError(edge_id)
        self._workflow.edges = [e for e in self._workflow.edges if e.id != edge_id]
        self._touch("remove_edge", edge_id=edge_id)
        return edge

    # ==========================================================================
    # Analysis & Persistence
    # ==========================================================================

    def validate(self, options: ValidationOptions | None = None) -> ValidationResult:
        """Validate the current workflow."""
        return validate(self._workflow, options)

    def resolve(self) -> ExecutionPlan:
        """Resolve the current workflow into an execution plan."""
        return resolve_order(self._workflow)

    def export(self) -> dict[str, Any]:
        """Return the current workflow in wire format."""
        return serialize_workflow(self._workflow)

    def save(self) -> Workflow:
        """Persist the current workflow.

        Passes a deep snapshot to the ``on_save`` callback, so later
        edits never leak into what was saved, and clears the dirty flag.

        Returns:
            The snapshot that was saved.
        """
        snapshot = self._workflow.model_copy(deep=True)
        if self._on_save is not None:
            self._on_save(snapshot)
        self._dirty = False
        logger.info(
            "Workflow saved",
            extra={
                "context": {
                    "node_count": len(snapshot.nodes),
                    "edge_count": len(snapshot.edges),
                }
            },
        )
        return snapshot

    # ==========================================================================
    # Private Helper Methods
    # ==========================================================================

    def _require_node(self, node_id: str) -> NodeBase:
        node = self._workflow.get_node(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    def _touch(self, operation: str, **context: Any) -> None:
        self._dirty = True
        logger.debug(
            f"Workflow edited: {operation}",
            extra={"context": {"operation": operation, **context}},
        )


__all__ = ["SaveCallback", "WorkflowEditor"]
