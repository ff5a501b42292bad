"""pytest configuration and fixtures.

This module provides the HTTP client for API tests and workflow
fixtures shared by the service tests:

- make_workflow: factory building a Workflow from compact node/edge specs
- linear_workflow: Start -> A -> B -> End
- branching_workflow: Start -> Conditional (true X, false Y) -> Merge -> End
"""

from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from poweragent.main import app
from poweragent.schemas.workflow import Workflow, create_edge, create_node
from poweragent.services.workflow.cache import ValidationCache, get_validation_cache

NodeSpec = tuple[str, str, float, float]
EdgeSpec = tuple[str, str] | tuple[str, str, str]
WorkflowFactory = Callable[..., Workflow]

# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "asyncio: marks tests as async (pytest-asyncio)",
    )


# =============================================================================
# WORKFLOW FIXTURES
# =============================================================================


def _build_workflow(
    nodes: list[NodeSpec],
    edges: list[EdgeSpec],
) -> Workflow:
    """Build a workflow from ``(id, kind, x, y)`` and ``(source, target[, handle])``."""
    built_nodes = [
        create_node(kind, x, y, node_id=node_id) for node_id, kind, x, y in nodes
    ]
    built_edges = []
    for index, edge in enumerate(edges, start=1):
        source, target, *rest = edge
        handle = rest[0] if rest else "default"
        built_edges.append(create_edge(source, target, handle, edge_id=f"e{index}"))
    return Workflow(nodes=built_nodes, edges=built_edges)


@pytest.fixture
def make_workflow() -> WorkflowFactory:
    """Factory building a Workflow from compact specs.

    Example:
        def test_something(make_workflow):
            workflow = make_workflow(
                [("start", "start", 0, 0), ("end", "end", 0, 100)],
                [("start", "end")],
            )
    """
    return _build_workflow


@pytest.fixture
def linear_workflow() -> Workflow:
    """Start -> A -> B -> End, laid out top to bottom."""
    return _build_workflow(
        [
            ("start", "start", 250, 0),
            ("a", "delegate", 250, 100),
            ("b", "delegate", 250, 200),
            ("end", "end", 250, 300),
        ],
        [("start", "a"), ("a", "b"), ("b", "end")],
    )


@pytest.fixture
def branching_workflow() -> Workflow:
    """Start -> Conditional (true X, false Y) -> Merge -> End.

    X sits to the right of Y so the tie-break puts Y first.
    """
    return _build_workflow(
        [
            ("start", "start", 250, 0),
            ("check", "conditional", 250, 100),
            ("x", "synthesize", 450, 200),
            ("y", "synthesize", 50, 200),
            ("merge", "merge", 250, 300),
            ("end", "end", 250, 400),
        ],
        [
            ("start", "check"),
            ("check", "x", "true"),
            ("check", "y", "false"),
            ("x", "merge"),
            ("y", "merge"),
            ("merge", "end"),
        ],
    )


@pytest.fixture
def wire_workflow() -> dict[str, Any]:
    """Minimal valid workflow in editor wire format."""
    return {
        "nodes": [
            {
                "id": "start",
                "type": "start",
                "position": {"x": 250, "y": 50},
                "data": {"label": "Start Workflow", "type": "start"},
            },
            {
                "id": "delegate_1",
                "type": "delegate",
                "position": {"x": 250, "y": 150},
                "data": {
                    "label": "Delegate",
                    "type": "delegate",
                    "config": {
                        "targetAgent": "agent_research",
                        "taskTemplate": "Process this request: {{$json.userInput}}",
                    },
                },
            },
            {
                "id": "end",
                "type": "end",
                "position": {"x": 250, "y": 400},
                "data": {"label": "End Workflow", "type": "end"},
            },
        ],
        "edges": [
            {"id": "e1", "source": "start", "target": "delegate_1"},
            {"id": "e2", "source": "delegate_1", "target": "end", "sourceHandle": None},
        ],
    }


# =============================================================================
# HTTP CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def validation_cache() -> ValidationCache:
    """Fresh in-memory validation cache for one test."""
    return ValidationCache(redis_url=None, ttl=60)


@pytest_asyncio.fixture
async def async_client(
    validation_cache: ValidationCache,
) -> AsyncGenerator[AsyncClient]:
    """Async HTTP client for testing API endpoints.

    Uses ASGI transport to test the FastAPI app without running a server.
    Overrides the cache dependency so tests never share cached results.

    Example:
        async def test_health(async_client):
            response = await async_client.get("/health")
            assert response.status_code == 200
    """
    app.dependency_overrides[get_validation_cache] = lambda: validation_cache
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as client:
            yield client
    finally:
        app.dependency_overrides.clear()
