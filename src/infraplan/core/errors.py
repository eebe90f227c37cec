"""Error taxonomy for plan compilation and execution."""

from __future__ import annotations


class InfraplanError(Exception):
    """Base class for all infraplan errors."""


class PlanError(InfraplanError):
    """Raised while compiling declarations into a plan, before any side effect."""


class DuplicateNodeId(PlanError):
    """A resource id was declared more than once."""

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Duplicate resource id: {node_id}")


class DanglingReference(PlanError):
    """A reference points at a resource that was never declared."""

    def __init__(self, source: str, target: str, output_key: str | None = None) -> None:
        self.source = source
        self.target = target
        self.output_key = output_key
        super().__init__(self._message())

    def _message(self) -> str:
        return f"Resource '{self.source}' references undeclared resource '{self.target}'"


class UnknownOutputKey(DanglingReference):
    """A reference names an output key the target's kind does not produce."""

    def __init__(self, source: str, target: str, output_key: str, kind: str) -> None:
        self.kind = kind
        super().__init__(source, target, output_key)

    def _message(self) -> str:
        return (
            f"Resource '{self.source}' references output '{self.output_key}' of "
            f"'{self.target}', which kind '{self.kind}' does not produce"
        )


class InvalidReference(PlanError):
    """A reference marker is malformed."""

    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__(f"Invalid reference '{text}': expected '<resource>.<output>'")


class InvalidDependency(PlanError):
    """An explicit or implicit edge cannot be added to the graph."""

    def __init__(self, source: str, target: str, reason: str) -> None:
        self.source = source
        self.target = target
        self.reason = reason
        super().__init__(f"Invalid dependency {source} -> {target}: {reason}")


class CycleError(PlanError):
    """The dependency graph contains a cycle."""

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = list(cycle)
        path = " -> ".join(self.cycle + self.cycle[:1])
        super().__init__(f"Dependency cycle detected: {path}")


class UnknownNode(PlanError):
    """An operation named a resource id that was never declared."""

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Unknown resource: {node_id}")


class UnresolvedReference(InfraplanError):
    """A reference was resolved before its target produced outputs."""

    def __init__(self, node_id: str, output_key: str) -> None:
        self.node_id = node_id
        self.output_key = output_key
        super().__init__(f"Output '{output_key}' of '{node_id}' is not available yet")


class OutputsAlreadyRecorded(InfraplanError):
    """Outputs were recorded twice for the same resource."""

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Outputs already recorded for resource: {node_id}")


class ApplyError(InfraplanError):
    """Raised by a provider when applying a resource fails."""

    retryable = False

    def __init__(self, node_id: str, message: str = "apply failed") -> None:
        self.node_id = node_id
        super().__init__(f"{node_id}: {message}")


class RetryableApplyError(ApplyError):
    """Transient failure; the executor retries with backoff."""

    retryable = True


class FatalApplyError(ApplyError):
    """Non-retryable failure; the executor aborts the remaining plan."""
