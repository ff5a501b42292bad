"""Tests for workflow exception classes.

Verifies error codes, messages, and details dictionaries used by the
API layer to build error responses.
"""

from poweragent.schemas.validation import ValidationError, ValidationErrorCode
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


class TestWorkflowError:
    """Tests for the base exception."""

    def test_attributes(self):
        """Message, code, and details are exposed."""
        error = WorkflowError("boom", "SOME_CODE", {"a": 1})
        assert str(error) == "boom"
        assert error.error_code == "SOME_CODE"
        assert error.details == {"a": 1}

    def test_details_default_to_empty(self):
        """Details are never None."""
        assert WorkflowError("boom", "SOME_CODE").details == {}

    def test_subclasses_share_base(self):
        """Every workflow exception can be caught as WorkflowError."""
        for error in (
            CyclicGraphError(["a", "b", "a"]),
            MalformedWorkflowError("bad"),
            NodeNotFoundError("a"),
            EdgeNotFoundError("e1"),
        ):
            assert isinstance(error, WorkflowError)


class TestParseErrors:
    """Tests for wire-format parse errors."""

    def test_unsupported_node_kind(self):
        """Kind and node ID land in details."""
        error = UnsupportedNodeKindError("webhook", "node_1")
        assert error.details == {"kind": "webhook", "node_id": "node_1"}
        assert "'webhook'" in error.message

    def test_malformed_workflow(self):
        """Reason is prefixed and field errors kept."""
        error = MalformedWorkflowError("bad shape", errors=[{"loc": ["nodes"]}])
        assert error.message == "Malformed workflow: bad shape"
        assert error.reason == "bad shape"
        assert error.details == {"errors": [{"loc": ["nodes"]}]}


class TestPlanErrors:
    """Tests for plan generation errors."""

    def test_cyclic_graph(self):
        """Cycle path is rendered in the message."""
        error = CyclicGraphError(["a", "b", "a"])
        assert error.message == "Unconditional cycle detected: a -> b -> a"
        assert error.details == {"cycle_path": ["a", "b", "a"]}
        assert error.node_ids == ["a", "b"]

    def test_workflow_invalid(self):
        """Validation errors are listed by code and dumped in camelCase."""
        errors = [
            ValidationError(code=ValidationErrorCode.MISSING_END, message="no end"),
            ValidationError(
                code=ValidationErrorCode.DEAD_END,
                message="stuck",
                node_ids=["a"],
            ),
        ]
        error = WorkflowInvalidError(errors)

        assert error.errors == errors
        assert error.message.endswith("DEAD_END, MISSING_END")
        assert error.details["errors"][1]["nodeIds"] == ["a"]


class TestEditingErrors:
    """Tests for editor lookup errors."""

    def test_node_not_found(self):
        """Node ID is in the details."""
        assert NodeNotFoundError("a").details == {"node_id": "a"}

    def test_edge_not_found(self):
        """Edge ID is in the details."""
        assert EdgeNotFoundError("e1").error_code == "EDGE_NOT_FOUND"

    def test_duplicate_connection(self):
        """Message names the handle."""
        error = DuplicateConnectionError("check", "x", "true")
        assert error.message == "Connection check[true] -> x already exists"
        assert error.source_handle == "true"
