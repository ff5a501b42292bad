"""Workflow templates offered by the agent builder.

- default_workflow: the blank canvas, a Start and an End node
- sample_workflow: "delegate, check the result, respond" with both
  conditional arms merged before the End node
"""

from __future__ import annotations

from poweragent.schemas.workflow import (
    ConditionalConfig,
    ConditionOperator,
    DelegateConfig,
    EdgeHandle,
    NodeKind,
    SynthesizeConfig,
    Workflow,
    create_edge,
    create_node,
)

START_NODE_ID = "start"
END_NODE_ID = "end"


def default_workflow() -> Workflow:
    """Return the canvas a new agent starts with."""
    return Workflow(
        nodes=[
            create_node(
                NodeKind.START,
                250,
                50,
                node_id=START_NODE_ID,
                label="Start Workflow",
                description="User input",
            ),
            create_node(
                NodeKind.END,
                250,
                400,
                node_id=END_NODE_ID,
                label="End Workflow",
                description="Final output",
            ),
        ],
        edges=[],
    )


def sample_workflow(agent_id: str, agent_name: str) -> Workflow:
    """Return the sample workflow delegating to one sub-agent.

    Args:
        agent_id: Sub-agent that receives the delegated task.
        agent_name: Display name used in the delegate node's label.

    Raises:
        ValueError: If ``agent_id`` is empty; the sample needs an agent.

    Example:
        >>> workflow = sample_workflow("agent_1", "Researcher")
        >>> workflow.get_node("delegate_1").label
        'Delegate to Researcher'
    """
    if not agent_id:
        raise ValueError("sample workflow requires a sub-agent")

    nodes = [
        create_node(
            NodeKind.START,
            250,
            50,
            node_id=START_NODE_ID,
            label="Start Workflow",
            description="User input received",
        ),
        create_node(
            NodeKind.DELEGATE,
            250,
            150,
            node_id="delegate_1",
            label=f"Delegate to {agent_name}",
            description=f"Process with {agent_name}",
            config=DelegateConfig(
                target_agent=agent_id,
                task_template="Process this request: {{$json.userInput}}",
            ),
        ),
        create_node(
            NodeKind.CONDITIONAL,
            250,
            280,
            node_id="conditional_1",
            label="Check Result",
            description="Evaluate the result",
            config=ConditionalConfig(
                variable="$json.result",
                operator=ConditionOperator.EXISTS,
                value="",
            ),
        ),
        create_node(
            NodeKind.SYNTHESIZE,
            450,
            380,
            node_id="synthesize_1",
            label="Success Response",
            description="Format success response",
            config=SynthesizeConfig(
                instructions="Format the successful result: {{$json.previousResult}}",
            ),
        ),
        create_node(
            NodeKind.SYNTHESIZE,
            50,
            380,
            node_id="synthesize_2",
            label="Error Response",
            description="Handle error case",
            config=SynthesizeConfig(
                instructions="Apologize and explain that the task could not be completed.",
            ),
        ),
        create_node(
            NodeKind.MERGE,
            250,
            480,
            node_id="merge_1",
            label="Merge Results",
            description="Combine paths",
        ),
        create_node(
            NodeKind.END,
            250,
            580,
            node_id=END_NODE_ID,
            label="End Workflow",
            description="Return final result",
        ),
    ]

    edges = [
        create_edge(START_NODE_ID, "delegate_1", edge_id="e1"),
        create_edge("delegate_1", "conditional_1", edge_id="e2"),
        create_edge(
            "conditional_1", "synthesize_1", EdgeHandle.TRUE, edge_id="e3", label="True"
        ),
        create_edge(
            "conditional_1", "synthesize_2", EdgeHandle.FALSE, edge_id="e4", label="False"
        ),
        create_edge("synthesize_1", "merge_1", edge_id="e5"),
        create_edge("synthesize_2", "merge_1", edge_id="e6"),
        create_edge("merge_1", END_NODE_ID, edge_id="e7"),
    ]

    return Workflow(nodes=nodes, edges=edges)


__all__ = ["END_NODE_ID", "START_NODE_ID", "default_workflow", "sample_workflow"]
