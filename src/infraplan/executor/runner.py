"""Plan execution with retry, backoff and layer-parallel apply."""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from infraplan.core.errors import ApplyError, FatalApplyError, UnresolvedReference
from infraplan.core.nodes import ResourceNode
from infraplan.core.planner import ProvisioningPlan
from infraplan.executor.provider import Provider
from infraplan.observability.logging import get_logger

_log = get_logger("executor.runner")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff for retryable apply errors."""

    max_attempts: int = 3
    backoff_seconds: float = 0.5
    backoff_factor: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def delays(self) -> Iterator[float]:
        """Yield the sleep before each retry (``max_attempts - 1`` values)."""
        delay = self.backoff_seconds
        for _ in range(self.max_attempts - 1):
            yield delay
            delay *= self.backoff_factor


@dataclass
class ExecutionReport:
    """Outcome of one provisioning run."""

    plan_name: str
    applied: list[str] = field(default_factory=list)
    outputs: dict[str, dict[str, Any]] = field(default_factory=dict)
    attempts: dict[str, int] = field(default_factory=dict)
    failed_node: str | None = None
    error: ApplyError | None = None

    @property
    def ok(self) -> bool:
        return self.failed_node is None

    @property
    def last_completed(self) -> str | None:
        """Id of the last resource that finished applying."""
        return self.applied[-1] if self.applied else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "plan": self.plan_name,
            "ok": self.ok,
            "applied": list(self.applied),
            "failed_node": self.failed_node,
            "error": str(self.error) if self.error else None,
            "attempts": dict(self.attempts),
            "outputs": self.outputs,
        }


class Executor:
    """
    Applies a provisioning plan through a provider.

    Each node's attributes are resolved against the outputs recorded so
    far, so a provider never sees an unresolved reference. Retryable errors
    are retried with backoff; a fatal error, or retries running out, aborts
    the remaining plan. Any other provider exception, or a reference that
    cannot be resolved, fails the node as a FatalApplyError.
    """

    def __init__(
        self,
        provider: Provider,
        retry: RetryPolicy | None = None,
        max_workers: int = 1,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._provider = provider
        self._retry = retry or RetryPolicy()
        self._max_workers = max_workers
        self._sleep = sleep
        self._lock = threading.Lock()

    def run(self, plan: ProvisioningPlan) -> ExecutionReport:
        """Apply nodes one at a time in plan order."""
        report = ExecutionReport(plan.name)
        _log.info("run_started", plan=plan.name, resources=len(plan), mode="sequential")
        for node in plan:
            try:
                self._apply_node(plan, node, report)
            except ApplyError as exc:
                self._fail(report, node, exc)
                break
        self._finish(report)
        return report

    def run_layers(self, plan: ProvisioningPlan) -> ExecutionReport:
        """
        Apply the plan layer by layer.

        Nodes of one layer run concurrently; the next layer starts only once
        the whole layer has finished. A failure lets the running layer
        complete and skips every later layer.
        """
        report = ExecutionReport(plan.name)
        layers = plan.layers()
        _log.info(
            "run_started",
            plan=plan.name,
            resources=len(plan),
            layers=len(layers),
            mode="layered",
            workers=self._max_workers,
        )
        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            for index, layer in enumerate(layers):
                _log.debug("layer_started", layer=index, resources=[n.id for n in layer])
                futures = [(node, pool.submit(self._apply_node, plan, node, report)) for node in layer]
                for node, future in futures:
                    try:
                        future.result()
                    except ApplyError as exc:
                        if report.ok:
                            self._fail(report, node, exc)
                if not report.ok:
                    break
        self._finish(report)
        return report

    def _apply_node(self, plan: ProvisioningPlan, node: ResourceNode, report: ExecutionReport) -> None:
        if node.is_applied:
            raise FatalApplyError(node.id, "already applied by an earlier run of this plan")
        with self._lock:
            snapshot = dict(report.outputs)
        try:
            attributes = plan.graph.resolver.resolve_attributes(node.id, snapshot)
        except UnresolvedReference as exc:
            raise FatalApplyError(node.id, str(exc)) from exc

        delays = self._retry.delays()
        attempt = 0
        while True:
            attempt += 1
            try:
                outputs = dict(self._provider.apply(node, attributes))
                break
            except ApplyError as exc:
                delay = next(delays, None) if exc.retryable else None
                if delay is None:
                    with self._lock:
                        report.attempts[node.id] = attempt
                    raise
                _log.warning("apply_retry", resource=node.id, attempt=attempt, delay=delay, error=str(exc))
                self._sleep(delay)
            except Exception as exc:
                with self._lock:
                    report.attempts[node.id] = attempt
                raise FatalApplyError(node.id, f"provider error: {type(exc).__name__}: {exc}") from exc

        node.record_outputs(outputs)
        with self._lock:
            report.attempts[node.id] = attempt
            report.outputs[node.id] = outputs
            report.applied.append(node.id)
        _log.info("node_applied", resource=node.id, kind=node.kind, attempts=attempt)

    def _fail(self, report: ExecutionReport, node: ResourceNode, exc: ApplyError) -> None:
        if exc.retryable:
            fatal = FatalApplyError(node.id, f"retries exhausted: {exc}")
            fatal.__cause__ = exc
            exc = fatal
        report.failed_node = node.id
        report.error = exc
        _log.error("apply_failed", resource=node.id, error=str(exc), applied=len(report.applied))

    @staticmethod
    def _finish(report: ExecutionReport) -> None:
        _log.info(
            "run_finished",
            plan=report.plan_name,
            ok=report.ok,
            applied=len(report.applied),
            last_completed=report.last_completed,
        )
