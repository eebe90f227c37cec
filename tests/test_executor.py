"""Tests for executor package."""

import threading

import pytest

from infraplan.core.errors import FatalApplyError, RetryableApplyError, UnresolvedReference
from infraplan.core.nodes import iter_references
from infraplan.core.stack import Stack
from infraplan.executor import DryRunProvider, Executor, RetryPolicy


class RecordingProvider:
    """Provider returning canned outputs, failing on demand."""

    def __init__(self, failures=None, fatal=()):
        self.failures = dict(failures or {})
        self.fatal = set(fatal)
        self.calls = []
        self._lock = threading.Lock()

    def apply(self, node, resolved_attributes):
        with self._lock:
            self.calls.append((node.id, dict(resolved_attributes)))
            if node.id in self.fatal:
                raise FatalApplyError(node.id, "access denied")
            if self.failures.get(node.id, 0) > 0:
                self.failures[node.id] -= 1
                raise RetryableApplyError(node.id, "throttled")
        return {
            "role_name": f"{node.id}-name",
            "role_arn": f"arn:{node.id}",
            "instance_profile_name": f"{node.id}-profile",
            "id": node.id,
        }


def make_stack():
    stack = Stack("emr")
    role = stack.declare("role", "role")
    other = stack.declare("other", "role")
    profile = stack.declare("profile", "instance_profile", {"roles": [role.ref("role_name")]})
    stack.declare(
        "cluster",
        "cluster",
        {"job_flow_role": {"ref": "profile.instance_profile_name"}, "service_role": other.ref("role_arn")},
    )
    return stack


@pytest.fixture
def plan():
    return make_stack().compile()


@pytest.fixture
def sleeps():
    return []


class TestRetryPolicy:
    """Tests for RetryPolicy class."""

    def test_delays(self):
        policy = RetryPolicy(max_attempts=4, backoff_seconds=0.5, backoff_factor=2.0)

        assert list(policy.delays()) == [0.5, 1.0, 2.0]

    def test_single_attempt_has_no_delays(self):
        assert list(RetryPolicy(max_attempts=1).delays()) == []

    def test_invalid_attempts(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)


class TestExecutor:
    """Tests for sequential execution."""

    def test_run_applies_in_plan_order(self, plan, sleeps):
        provider = RecordingProvider()
        report = Executor(provider, sleep=sleeps.append).run(plan)

        assert report.ok
        assert report.applied == plan.order
        assert [c[0] for c in provider.calls] == plan.order
        assert report.last_completed == "cluster"

    def test_attributes_resolved_before_apply(self, plan, sleeps):
        provider = RecordingProvider()
        Executor(provider, sleep=sleeps.append).run(plan)

        calls = dict(provider.calls)
        assert calls["profile"] == {"roles": ["role-name"]}
        assert calls["cluster"] == {"job_flow_role": "profile-profile", "service_role": "arn:other"}

    def test_outputs_recorded_on_nodes(self, plan, sleeps):
        report = Executor(RecordingProvider(), sleep=sleeps.append).run(plan)

        assert plan.graph.get("role").outputs["role_name"] == "role-name"
        assert report.outputs["cluster"]["id"] == "cluster"

    def test_retryable_error_retried(self, plan, sleeps):
        provider = RecordingProvider(failures={"profile": 2})
        retry = RetryPolicy(max_attempts=3, backoff_seconds=0.1, backoff_factor=3.0)

        report = Executor(provider, retry=retry, sleep=sleeps.append).run(plan)

        assert report.ok
        assert report.attempts["profile"] == 3
        assert sleeps == [0.1, pytest.approx(0.3)]

    def test_retries_exhausted(self, plan, sleeps):
        provider = RecordingProvider(failures={"profile": 5})
        retry = RetryPolicy(max_attempts=2, backoff_seconds=0.1)

        report = Executor(provider, retry=retry, sleep=sleeps.append).run(plan)

        assert not report.ok
        assert report.failed_node == "profile"
        assert isinstance(report.error, FatalApplyError)
        assert isinstance(report.error.__cause__, RetryableApplyError)
        assert report.applied == ["role", "other"]
        assert report.attempts["profile"] == 2

    def test_fatal_error_aborts(self, plan, sleeps):
        provider = RecordingProvider(fatal={"other"})

        report = Executor(provider, sleep=sleeps.append).run(plan)

        assert report.failed_node == "other"
        assert report.applied == ["role"]
        assert report.last_completed == "role"
        assert sleeps == []
        assert "cluster" not in [c[0] for c in provider.calls]

    def test_report_to_dict(self, plan, sleeps):
        report = Executor(RecordingProvider(fatal={"role"}), sleep=sleeps.append).run(plan)

        data = report.to_dict()
        assert data["ok"] is False
        assert data["failed_node"] == "role"
        assert data["applied"] == []
        assert "access denied" in data["error"]

    def test_invalid_workers(self):
        with pytest.raises(ValueError):
            Executor(RecordingProvider(), max_workers=0)

    def test_unexpected_provider_error_aborts(self, plan, sleeps):
        class BrokenProvider(RecordingProvider):
            def apply(self, node, resolved_attributes):
                if node.id == "other":
                    raise RuntimeError("socket closed")
                return super().apply(node, resolved_attributes)

        report = Executor(BrokenProvider(), sleep=sleeps.append).run(plan)

        assert report.failed_node == "other"
        assert report.applied == ["role"]
        assert isinstance(report.error, FatalApplyError)
        assert isinstance(report.error.__cause__, RuntimeError)
        assert "socket closed" in str(report.error)
        assert report.attempts["other"] == 1
        assert sleeps == []

    def test_unresolvable_reference_fails_node(self, sleeps):
        stack = Stack()
        stack.declare("bucket", "bucket")
        stack.declare("app", "widget", {"bucket": {"ref": "bucket.arn"}})
        provider = DryRunProvider()

        report = Executor(provider, sleep=sleeps.append).run(stack.compile())

        assert report.failed_node == "app"
        assert report.applied == ["bucket"]
        assert isinstance(report.error, FatalApplyError)
        assert isinstance(report.error.__cause__, UnresolvedReference)
        assert [c[0] for c in provider.applied] == ["bucket"]

    def test_recompiled_plan_runs_again(self, sleeps):
        stack = make_stack()
        provider = RecordingProvider()
        executor = Executor(provider, sleep=sleeps.append)

        first = executor.run(stack.compile())
        second = executor.run(stack.compile())

        assert first.ok
        assert second.ok
        assert second.applied == first.applied
        assert len(provider.calls) == 2 * len(first.applied)

    def test_rerunning_applied_plan_fails_before_provider(self, plan, sleeps):
        provider = RecordingProvider()
        executor = Executor(provider, sleep=sleeps.append)
        executor.run(plan)
        calls = len(provider.calls)

        report = executor.run(plan)

        assert report.failed_node == plan.order[0]
        assert report.applied == []
        assert isinstance(report.error, FatalApplyError)
        assert len(provider.calls) == calls


class TestLayeredExecution:
    """Tests for layer-parallel execution."""

    def test_run_layers(self, plan, sleeps):
        provider = RecordingProvider()

        report = Executor(provider, max_workers=4, sleep=sleeps.append).run_layers(plan)

        assert report.ok
        assert sorted(report.applied) == sorted(plan.order)
        position = {node_id: i for i, node_id in enumerate(report.applied)}
        for edge in plan.graph.edges:
            assert position[edge.source] < position[edge.target]

    def test_layer_failure_skips_later_layers(self, plan, sleeps):
        provider = RecordingProvider(fatal={"other"})

        report = Executor(provider, max_workers=2, sleep=sleeps.append).run_layers(plan)

        assert report.failed_node == "other"
        # The rest of the failing layer still completes
        assert report.applied == ["role"]
        assert {c[0] for c in provider.calls} == {"role", "other"}

    def test_unexpected_error_in_layer(self, plan, sleeps):
        class BrokenProvider(RecordingProvider):
            def apply(self, node, resolved_attributes):
                if node.id == "profile":
                    raise KeyError("role_name")
                return super().apply(node, resolved_attributes)

        report = Executor(BrokenProvider(), max_workers=2, sleep=sleeps.append).run_layers(plan)

        assert report.failed_node == "profile"
        assert sorted(report.applied) == ["other", "role"]
        assert isinstance(report.error.__cause__, KeyError)

    def test_concurrent_layer(self, sleeps):
        barrier = threading.Barrier(3, timeout=5)

        class BarrierProvider:
            def apply(self, node, resolved_attributes):
                barrier.wait()
                return {}

        stack = Stack()
        for name in ("a", "b", "c"):
            stack.declare(name, "widget")

        report = Executor(BarrierProvider(), max_workers=3, sleep=sleeps.append).run_layers(stack.compile())

        assert report.ok
        assert sorted(report.applied) == ["a", "b", "c"]


class TestDryRunProvider:
    """Tests for DryRunProvider class."""

    def test_outputs_follow_catalog(self):
        stack = Stack()
        stack.declare("vpc", "network")
        stack.declare("bucket", "bucket")
        plan = stack.compile()
        provider = DryRunProvider()

        Executor(provider).run(plan)

        assert plan.graph.get("vpc").outputs["public_subnet_id"] == "vpc.public_subnet_id"
        assert dict(plan.graph.get("bucket").outputs) == {"id": "bucket.id"}

    def test_referenced_outputs_of_uncatalogued_kind(self):
        stack = Stack()
        stack.declare("bucket", "bucket")
        stack.declare("app", "widget", {"bucket": {"ref": "bucket.arn"}, "name": {"ref": "bucket.name"}})
        plan = stack.compile()
        provider = DryRunProvider.for_plan(plan, stack.catalog)

        report = Executor(provider).run(plan)

        assert report.ok
        assert report.outputs["bucket"] == {"id": "bucket.id", "arn": "bucket.arn", "name": "bucket.name"}
        assert dict(provider.applied)["app"] == {"bucket": "bucket.arn", "name": "bucket.name"}

    def test_example_stack_end_to_end(self, example_stack_path):
        stack = Stack.load(example_stack_path)
        provider = DryRunProvider(stack.catalog)

        report = Executor(provider).run(stack.compile())

        assert report.ok
        applied = dict(provider.applied)
        assert applied["emr-instance-profile"]["roles"] == ["emr-job-flow-role.role_name"]
        assert applied["emr-cluster"]["instances"]["ec2_subnet_id"] == "vpc.public_subnet_id"
        assert applied["efo-consumer"]["stream_arn"] == "kinesis-source.stream_arn"
        for attributes in applied.values():
            assert list(iter_references(attributes)) == []
