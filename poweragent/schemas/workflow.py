"""Pydantic schemas for the workflow graph: nodes, edges, and workflows.

A node is a tagged union keyed by ``kind``. Each kind is its own model
whose ``config`` type is fixed by the kind, so a delegate node can never
carry conditional fields and vice versa.

These are the in-process models. The editor/runtime JSON shape
(``type``/``position``/``data``) is produced by
``poweragent.services.workflow.serialization``.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from poweragent.schemas.base import WireSchema

# =============================================================================
# Enums
# =============================================================================


class NodeKind(str, Enum):
    """Closed set of workflow node kinds.

    Adding a kind requires a node model below plus validator and
    resolver handling.
    """

    START = "start"
    DELEGATE = "delegate"
    CONDITIONAL = "conditional"
    SYNTHESIZE = "synthesize"
    MERGE = "merge"
    END = "end"

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


class EdgeHandle(str, Enum):
    """Source handle an edge leaves from.

    Only conditional nodes expose ``true``/``false``; every other node
    connects through ``default``.
    """

    DEFAULT = "default"
    TRUE = "true"
    FALSE = "false"

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


class ConditionOperator(str, Enum):
    """Operators offered by the conditional node editor."""

    EQUALS = "equals"
    CONTAINS = "contains"
    EXISTS = "exists"
    EMPTY = "empty"

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


NODE_KIND_DESCRIPTIONS: dict[str, str] = {
    NodeKind.START.value: "Entry point that receives the user prompt",
    NodeKind.DELEGATE.value: "Delegates a task to a specific sub-agent",
    NodeKind.CONDITIONAL.value: "Makes decisions based on conditions",
    NodeKind.SYNTHESIZE.value: "Generates text using LLM to format responses",
    NodeKind.MERGE.value: "Combines multiple execution paths",
    NodeKind.END.value: "Final step that returns the result",
}

# Handle label shown on edges leaving a conditional node.
BRANCH_LABELS: dict[str, str] = {
    EdgeHandle.TRUE.value: "True",
    EdgeHandle.FALSE.value: "False",
}

# =============================================================================
# Node Configs
# =============================================================================


class NodeConfig(WireSchema):
    """Base for per-kind node settings.

    Keys the editor stores alongside the settings (its own ``label`` and
    ``description`` copies) are kept as extra fields so they survive a
    round trip. Text is kept verbatim: templates and instructions may
    carry meaningful leading or trailing whitespace.
    """

    model_config = ConfigDict(extra="allow", str_strip_whitespace=False)


class EmptyConfig(NodeConfig):
    """Config for start, merge, and end nodes (no settings)."""


class DelegateConfig(NodeConfig):
    """Hand a sub-task to a named sub-agent."""

    target_agent: str = Field(
        default="",
        description="ID of the sub-agent receiving the task",
        examples=["agent_copywriter"],
    )
    task_template: str = Field(
        default="",
        description="Task text; {{variable}} placeholders are filled at runtime",
        examples=["Process this request: {{$json.userInput}}"],
    )


class ConditionalConfig(NodeConfig):
    """Binary decision evaluated against a runtime variable."""

    variable: str = Field(
        default="",
        description="Runtime variable to inspect",
        examples=["$json.result"],
    )
    operator: ConditionOperator = Field(
        default=ConditionOperator.CONTAINS.value,
        description="Comparison operator",
    )
    value: str = Field(
        default="",
        description="Comparison operand (unused by exists/empty)",
    )


class SynthesizeConfig(NodeConfig):
    """LLM synthesis step that formats the response."""

    instructions: str = Field(
        default="",
        description="Instructions passed to the synthesizing model",
        examples=["Format the successful result: {{$json.previousResult}}"],
    )


# =============================================================================
# Geometry
# =============================================================================


class Position(WireSchema):
    """Canvas position of a node.

    Only used for display and for deterministic tie-breaking in the
    execution plan (top-to-bottom, then left-to-right).
    """

    x: float = 0.0
    y: float = 0.0


# =============================================================================
# Nodes
# =============================================================================


class NodeBase(WireSchema):
    """Fields shared by every node kind."""

    id: str = Field(..., min_length=1, max_length=255, description="Unique node ID")
    position: Position = Field(default_factory=Position)
    label: str = Field(default="", max_length=255, description="Display label")
    description: str | None = Field(default=None, description="Display description")

    @property
    def sort_key(self) -> tuple[float, float, str]:
        """Visual ordering key: ascending y, then x, then id."""
        return (self.position.y, self.position.x, self.id)


class StartNode(NodeBase):
    """Entry point of the workflow."""

    kind: Literal["start"] = NodeKind.START.value
    config: EmptyConfig = Field(default_factory=EmptyConfig)


class DelegateNode(NodeBase):
    """Step that delegates to a sub-agent."""

    kind: Literal["delegate"] = NodeKind.DELEGATE.value
    config: DelegateConfig = Field(default_factory=DelegateConfig)


class ConditionalNode(NodeBase):
    """Binary branch point with ``true`` and ``false`` outputs."""

    kind: Literal["conditional"] = NodeKind.CONDITIONAL.value
    config: ConditionalConfig = Field(default_factory=ConditionalConfig)


class SynthesizeNode(NodeBase):
    """LLM synthesis step."""

    kind: Literal["synthesize"] = NodeKind.SYNTHESIZE.value
    config: SynthesizeConfig = Field(default_factory=SynthesizeConfig)


class MergeNode(NodeBase):
    """OR-join: proceeds once any incoming branch completes."""

    kind: Literal["merge"] = NodeKind.MERGE.value
    config: EmptyConfig = Field(default_factory=EmptyConfig)


class EndNode(NodeBase):
    """Terminal step returning the result."""

    kind: Literal["end"] = NodeKind.END.value
    config: EmptyConfig = Field(default_factory=EmptyConfig)


WorkflowNode = Annotated[
    StartNode | DelegateNode | ConditionalNode | SynthesizeNode | MergeNode | EndNode,
    Field(discriminator="kind"),
]

NODE_MODELS: dict[str, type[NodeBase]] = {
    NodeKind.START.value: StartNode,
    NodeKind.DELEGATE.value: DelegateNode,
    NodeKind.CONDITIONAL.value: ConditionalNode,
    NodeKind.SYNTHESIZE.value: SynthesizeNode,
    NodeKind.MERGE.value: MergeNode,
    NodeKind.END.value: EndNode,
}

# =============================================================================
# Edges
# =============================================================================


class WorkflowEdge(WireSchema):
    """Directed edge between two nodes."""

    id: str = Field(..., min_length=1, max_length=255, description="Unique edge ID")
    source: str = Field(..., description="Source node ID")
    target: str = Field(..., description="Target node ID")
    source_handle: EdgeHandle = Field(
        default=EdgeHandle.DEFAULT.value,
        description="Output handle on the source node",
    )
    label: str = Field(default="", max_length=100, description="Display label")

    @field_validator("source_handle", mode="before")
    @classmethod
    def default_missing_handle(cls, v: Any) -> Any:
        """Editors omit the handle for plain nodes; treat that as default."""
        if v is None or v == "":
            return EdgeHandle.DEFAULT.value
        return v


# =============================================================================
# Workflow
# =============================================================================


class Workflow(WireSchema):
    """A supervisor agent's decision graph."""

    nodes: list[WorkflowNode] = Field(default_factory=list)
    edges: list[WorkflowEdge] = Field(default_factory=list)

    def get_node(self, node_id: str) -> NodeBase | None:
        """Return the first node with ``node_id``, or None."""
        return next((n for n in self.nodes if n.id == node_id), None)

    def get_edge(self, edge_id: str) -> WorkflowEdge | None:
        """Return the first edge with ``edge_id``, or None."""
        return next((e for e in self.edges if e.id == edge_id), None)

    def nodes_of_kind(self, kind: NodeKind | str) -> list[NodeBase]:
        """Return nodes of the given kind in document order."""
        return [n for n in self.nodes if n.kind == kind]

    def outgoing(self, node_id: str) -> list[WorkflowEdge]:
        """Return edges leaving ``node_id`` in document order."""
        return [e for e in self.edges if e.source == node_id]

    def incoming(self, node_id: str) -> list[WorkflowEdge]:
        """Return edges entering ``node_id`` in document order."""
        return [e for e in self.edges if e.target == node_id]


# =============================================================================
# Constructors
# =============================================================================


def new_node_id(kind: NodeKind | str) -> str:
    """Generate a fresh node ID such as ``delegate_3f9c2a1b7e4d``."""
    return f"{NodeKind(kind).value}_{uuid4().hex[:12]}"


def new_edge_id() -> str:
    """Generate a fresh edge ID such as ``e_91b0c3d2a8f4``."""
    return f"e_{uuid4().hex[:12]}"


def create_node(
    kind: NodeKind | str,
    x: float = 0.0,
    y: float = 0.0,
    *,
    node_id: str | None = None,
    label: str | None = None,
    description: str | None = None,
    config: BaseModel | dict[str, Any] | None = None,
) -> NodeBase:
    """Create a node of ``kind`` with a fresh unique ID.

    Label and description default to the builder's palette text
    ("Delegate Node", "Delegates a task to a specific sub-agent").

    Raises:
        ValueError: If ``kind`` is not a known node kind.
        TypeError: If ``config`` is a config model of another kind.
    """
    kind = NodeKind(kind)
    model = NODE_MODELS[kind.value]
    config_type = model.model_fields["config"].annotation

    if isinstance(config, BaseModel) and not isinstance(config, config_type):
        raise TypeError(
            f"{type(config).__name__} is not a valid config for {kind.value} nodes"
        )

    return model(
        id=node_id or new_node_id(kind),
        position=Position(x=x, y=y),
        label=label if label is not None else f"{kind.value.capitalize()} Node",
        description=(
            description if description is not None else NODE_KIND_DESCRIPTIONS[kind.value]
        ),
        config=config if config is not None else config_type(),
    )


def create_edge(
    source: str,
    target: str,
    source_handle: EdgeHandle | str = EdgeHandle.DEFAULT,
    *,
    edge_id: str | None = None,
    label: str = "",
) -> WorkflowEdge:
    """Create an edge with a fresh unique ID."""
    return WorkflowEdge(
        id=edge_id or new_edge_id(),
        source=source,
        target=target,
        source_handle=EdgeHandle(source_handle).value,
        label=label,
    )


__all__ = [
    "BRANCH_LABELS",
    "NODE_KIND_DESCRIPTIONS",
    "NODE_MODELS",
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
    "NodeConfig",
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
    "new_edge_id",
    "new_node_id",
]
