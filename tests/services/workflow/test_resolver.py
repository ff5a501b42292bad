"""Tests for ExecutionOrderResolver.

Test Coverage Strategy:
- Linear and branching workflows (dependencies, branch tags, join policy)
- Unconditional cycles vs. retry loops through a conditional
- Validate-first behavior and opting out of it
- Deterministic ordering by canvas position
"""

import pytest

from poweragent.schemas.plan import JoinPolicy
from poweragent.schemas.validation import ValidationErrorCode, ValidationOptions
from poweragent.schemas.workflow import Workflow, create_edge
from poweragent.services.workflow.exceptions import CyclicGraphError, WorkflowInvalidError
from poweragent.services.workflow.resolver import ExecutionOrderResolver, resolve_order


@pytest.fixture
def retry_workflow(make_workflow) -> Workflow:
    """Start -> A -> Check; true exits to End, false retries A."""
    return make_workflow(
        [
            ("start", "start", 0, 0),
            ("a", "delegate", 0, 100),
            ("check", "conditional", 0, 200),
            ("end", "end", 0, 300),
        ],
        [
            ("start", "a"),
            ("a", "check"),
            ("check", "end", "true"),
            ("check", "a", "false"),
        ],
    )


# =============================================================================
# LINEAR WORKFLOWS
# =============================================================================


class TestLinearResolution:
    """Start -> A -> B -> End."""

    def test_order(self, linear_workflow: Workflow):
        """Steps follow the chain."""
        plan = resolve_order(linear_workflow)
        assert plan.order == ["start", "a", "b", "end"]

    def test_dependencies_and_levels(self, linear_workflow: Workflow):
        """Each step depends on its single predecessor."""
        plan = resolve_order(linear_workflow)
        assert [s.depends_on for s in plan.steps] == [[], ["start"], ["a"], ["b"]]
        assert [s.level for s in plan.steps] == [0, 1, 2, 3]
        assert all(s.join_policy == JoinPolicy.ALL for s in plan.steps)
        assert all(s.branch is None and s.branch_of is None for s in plan.steps)

    def test_plan_summary(self, linear_workflow: Workflow):
        """Plan-level metadata describes the chain."""
        plan = resolve_order(linear_workflow)
        assert plan.entry_node_id == "start"
        assert plan.total_levels == 4
        assert plan.max_parallel_steps == 1
        assert plan.critical_path == ["start", "a", "b", "end"]

    def test_step_kinds(self, linear_workflow: Workflow):
        """Steps carry the node kind for the runtime."""
        plan = resolve_order(linear_workflow)
        assert plan.get_step("a").kind == "delegate"
        assert plan.get_step("missing") is None


# =============================================================================
# BRANCHING WORKFLOWS
# =============================================================================


class TestBranchResolution:
    """Start -> Conditional (true X, false Y) -> Merge -> End."""

    def test_order_uses_position_tie_break(self, branching_workflow: Workflow):
        """Y sits left of X at the same height, so it comes first."""
        plan = resolve_order(branching_workflow)
        assert plan.order == ["start", "check", "y", "x", "merge", "end"]

    def test_arms_depend_only_on_conditional(self, branching_workflow: Workflow):
        """Both arms are emitted and tagged with their branch."""
        plan = resolve_order(branching_workflow)
        x = plan.get_step("x")
        y = plan.get_step("y")
        assert x.depends_on == ["check"]
        assert y.depends_on == ["check"]
        assert (x.branch_of, x.branch) == ("check", True)
        assert (y.branch_of, y.branch) == ("check", False)
        assert x.level == y.level == 2

    def test_merge_joins_with_any(self, branching_workflow: Workflow):
        """Merge proceeds once any arm finishes."""
        merge = resolve_order(branching_workflow).get_step("merge")
        assert merge.join_policy == JoinPolicy.ANY
        assert merge.depends_on == ["y", "x"]
        assert merge.branch is None

    def test_end_depends_only_on_merge(self, branching_workflow: Workflow):
        """Steps after the merge are ungated."""
        end = resolve_order(branching_workflow).get_step("end")
        assert end.depends_on == ["merge"]
        assert end.join_policy == JoinPolicy.ALL
        assert end.branch_of is None

    def test_parallelism(self, branching_workflow: Workflow):
        """The two arms share a level."""
        plan = resolve_order(branching_workflow)
        assert plan.total_levels == 5
        assert plan.max_parallel_steps == 2
        assert plan.critical_path[0] == "start"
        assert plan.critical_path[-1] == "end"
        assert len(plan.critical_path) == 5

    def test_node_fed_by_both_arms_is_ungated(self, make_workflow):
        """A step reached whichever way the branch goes has no branch tag."""
        workflow = make_workflow(
            [
                ("start", "start", 0, 0),
                ("check", "conditional", 0, 100),
                ("x", "synthesize", 0, 200),
                ("end", "end", 0, 300),
            ],
            [
                ("start", "check"),
                ("check", "x", "true"),
                ("check", "x", "false"),
                ("x", "end"),
            ],
        )
        x = resolve_order(workflow).get_step("x")
        assert x.depends_on == ["check"]
        assert x.branch is None
        assert x.branch_of is None

    def test_arms_ending_separately(self, make_workflow):
        """Each arm may finish on its own End node."""
        workflow = make_workflow(
            [
                ("start", "start", 0, 0),
                ("check", "conditional", 0, 100),
                ("failed", "end", 100, 200),
                ("done", "end", -100, 200),
            ],
            [("start", "check"), ("check", "done", "true"), ("check", "failed", "false")],
        )
        plan = resolve_order(workflow)
        assert plan.order == ["start", "check", "done", "failed"]
        assert plan.get_step("done").branch is True
        assert plan.get_step("failed").branch is False


# =============================================================================
# CYCLES
# =============================================================================


class TestCycleHandling:
    """Unconditional cycles fail; retry loops resolve."""

    def test_unconditional_cycle_raises(self, make_workflow):
        """A -> B -> A through plain delegates names both nodes."""
        workflow = make_workflow(
            [
                ("start", "start", 0, 0),
                ("a", "delegate", 0, 100),
                ("b", "delegate", 0, 200),
                ("end", "end", 0, 300),
            ],
            [("start", "a"), ("a", "b"), ("b", "a"), ("b", "end")],
        )
        with pytest.raises(CyclicGraphError) as exc_info:
            resolve_order(workflow)

        assert exc_info.value.node_ids == ["a", "b"]
        assert exc_info.value.cycle_path == ["a", "b", "a"]
        assert exc_info.value.error_code == "CYCLIC_GRAPH"

    def test_cycle_reported_before_other_problems(self, make_workflow):
        """A structurally invalid graph with a cycle still reports the cycle."""
        workflow = make_workflow(
            [("start", "start", 0, 0), ("a", "delegate", 0, 100), ("b", "delegate", 0, 200)],
            [("start", "a"), ("a", "b"), ("b", "a")],
        )
        with pytest.raises(CyclicGraphError):
            resolve_order(workflow)

    def test_cycle_raised_without_validation(self, make_workflow):
        """Opting out of validation does not skip the cycle check."""
        workflow = make_workflow(
            [("a", "delegate", 0, 0), ("b", "merge", 0, 100)],
            [("a", "b"), ("b", "a")],
        )
        with pytest.raises(CyclicGraphError):
            resolve_order(workflow, validate=False)

    def test_retry_loop_resolves(self, retry_workflow: Workflow):
        """A loop through a conditional is a retry, not a cycle error."""
        plan = resolve_order(retry_workflow)
        assert plan.order == ["start", "a", "check", "end"]

    def test_retry_edge_reported_as_loops_to(self, retry_workflow: Workflow):
        """The back edge becomes loops_to, not a dependency."""
        plan = resolve_order(retry_workflow)
        assert plan.get_step("check").loops_to == ["a"]
        assert plan.get_step("a").depends_on == ["start"]
        assert plan.get_step("end").loops_to == []

    def test_retry_loop_exit_is_gated(self, retry_workflow: Workflow):
        """End is reached only on the true arm."""
        end = resolve_order(retry_workflow).get_step("end")
        assert (end.branch_of, end.branch) == ("check", True)


# =============================================================================
# VALIDATION INTEGRATION
# =============================================================================


class TestValidateFirst:
    """Resolution refuses invalid workflows unless told otherwise."""

    def test_invalid_workflow_raises(self, make_workflow):
        """All validation errors are attached to the exception."""
        workflow = make_workflow(
            [("a", "delegate", 0, 0), ("end", "end", 0, 100)],
            [("a", "end")],
        )
        with pytest.raises(WorkflowInvalidError) as exc_info:
            resolve_order(workflow)

        error = exc_info.value
        assert [e.code for e in error.errors] == [ValidationErrorCode.MISSING_START.value]
        assert error.error_code == "WORKFLOW_INVALID"
        assert error.details["errors"][0]["code"] == "MISSING_START"

    def test_validation_can_be_skipped(self, make_workflow):
        """Incomplete drafts resolve when validation is disabled."""
        workflow = make_workflow(
            [("start", "start", 0, 0), ("a", "delegate", 0, 100)],
            [("start", "a")],
        )
        plan = ExecutionOrderResolver(validate=False).resolve(workflow)
        assert plan.order == ["start", "a"]

    def test_empty_workflow_without_validation(self):
        """Nothing to run yields an empty plan."""
        plan = resolve_order(Workflow(), validate=False)
        assert plan.steps == []
        assert plan.entry_node_id is None
        assert plan.total_levels == 0
        assert plan.max_parallel_steps == 0


# =============================================================================
# DETERMINISM
# =============================================================================


class TestDeterminism:
    """Same graph, same plan."""

    def test_repeated_resolution_is_identical(self, branching_workflow: Workflow):
        """Resolving twice produces equal plans."""
        assert resolve_order(branching_workflow) == resolve_order(branching_workflow)

    def test_document_order_does_not_matter(self, branching_workflow: Workflow):
        """Shuffling node and edge lists leaves the order unchanged."""
        shuffled = Workflow(
            nodes=list(reversed(branching_workflow.nodes)),
            edges=list(reversed(branching_workflow.edges)),
        )
        original = resolve_order(branching_workflow)
        reordered = resolve_order(shuffled)
        assert reordered.order == original.order
        assert [s.depends_on for s in reordered.steps] == [
            s.depends_on for s in original.steps
        ]

    def test_y_orders_before_x(self, make_workflow):
        """A higher node runs first even when it sits further right."""
        workflow = make_workflow(
            [
                ("start", "start", 0, 0),
                ("check", "conditional", 0, 100),
                ("right", "synthesize", 400, 150),
                ("left", "synthesize", 0, 200),
                ("merge", "merge", 0, 300),
                ("end", "end", 0, 400),
            ],
            [
                ("start", "check"),
                ("check", "right", "true"),
                ("check", "left", "false"),
                ("right", "merge"),
                ("left", "merge"),
                ("merge", "end"),
            ],
        )
        assert resolve_order(workflow).order[2:4] == ["right", "left"]

    def test_id_breaks_exact_position_ties(self, make_workflow):
        """Nodes stacked on the same spot order by ID."""
        workflow = make_workflow(
            [
                ("start", "start", 0, 0),
                ("check", "conditional", 0, 100),
                ("q", "synthesize", 0, 200),
                ("p", "synthesize", 0, 200),
                ("merge", "merge", 0, 300),
                ("end", "end", 0, 400),
            ],
            [
                ("start", "check"),
                ("check", "q", "true"),
                ("check", "p", "false"),
                ("q", "merge"),
                ("p", "merge"),
                ("merge", "end"),
            ],
        )
        assert resolve_order(workflow).order[2:4] == ["p", "q"]


# =============================================================================
# LARGE WORKFLOWS
# =============================================================================


def _long_chain(make_workflow, length: int) -> Workflow:
    """Start -> ``length`` delegates -> End, one per row."""
    ids = ["start", *(f"d{i}" for i in range(length)), "end"]
    kinds = ["start", *(["delegate"] * length), "end"]
    nodes = [
        (node_id, kind, 0, row * 100)
        for row, (node_id, kind) in enumerate(zip(ids, kinds))
    ]
    return make_workflow(nodes, list(zip(ids, ids[1:])))


class TestLargeWorkflows:
    """Long chains resolve without exhausting the call stack."""

    def test_oversized_chain_is_refused(self, make_workflow):
        """A chain past the default node limit fails validation, not recursion."""
        workflow = _long_chain(make_workflow, 1200)

        with pytest.raises(WorkflowInvalidError) as exc_info:
            resolve_order(workflow)

        codes = [e.code for e in exc_info.value.errors]
        assert ValidationErrorCode.GRAPH_TOO_LARGE.value in codes

    def test_long_chain_with_raised_limit(self, make_workflow):
        """A 1500-step chain resolves once the node limit allows it."""
        workflow = _long_chain(make_workflow, 1500)

        plan = resolve_order(workflow, options=ValidationOptions(max_nodes=5000))

        assert len(plan.steps) == 1502
        assert plan.order[0] == "start"
        assert plan.order[-1] == "end"
        assert plan.total_levels == 1502
        assert len(plan.critical_path) == 1502

    def test_long_unconditional_cycle_is_reported(self, make_workflow):
        """A cycle closing over a long chain is still named in full."""
        workflow = _long_chain(make_workflow, 1500)
        workflow.edges.append(create_edge("d1499", "d0", edge_id="e_back"))

        with pytest.raises(CyclicGraphError) as exc_info:
            resolve_order(workflow, validate=False)

        path = exc_info.value.cycle_path
        assert path[0] == path[-1] == "d0"
        assert len(path) == 1501
