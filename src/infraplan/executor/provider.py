"""Provider boundary: the side-effecting apply of a single resource."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, Mapping, Protocol

from infraplan.core.nodes import KindCatalog, ResourceNode

if TYPE_CHECKING:
    from infraplan.core.planner import ProvisioningPlan


class Provider(Protocol):
    """
    Applies one resource and returns its outputs.

    Implementations must be idempotent under retry: applying the same node
    with the same resolved attributes twice yields the same outputs.
    Transient failures raise RetryableApplyError, permanent ones
    FatalApplyError.
    """

    def apply(self, node: ResourceNode, resolved_attributes: Mapping[str, Any]) -> Mapping[str, Any]:
        ...


class DryRunProvider:
    """
    Provider that touches nothing and fabricates deterministic outputs.

    Each documented output key of the node's kind maps to
    ``"<node_id>.<key>"``. Uncatalogued kinds get an ``id`` output plus
    every key that other resources reference on them.
    """

    def __init__(
        self,
        catalog: KindCatalog | None = None,
        referenced: Mapping[str, Iterable[str]] | None = None,
    ) -> None:
        self._catalog = catalog or KindCatalog.default()
        self._referenced = {node_id: tuple(keys) for node_id, keys in (referenced or {}).items()}
        self.applied: list[tuple[str, dict[str, Any]]] = []

    @classmethod
    def for_plan(cls, plan: ProvisioningPlan, catalog: KindCatalog | None = None) -> DryRunProvider:
        """Create a provider that knows which outputs the plan's references use."""
        referenced: dict[str, list[str]] = {}
        for edge in plan.graph.edges:
            if edge.is_implicit and edge.output_key not in referenced.setdefault(edge.source, []):
                referenced[edge.source].append(edge.output_key)
        return cls(catalog, referenced)

    def apply(self, node: ResourceNode, resolved_attributes: Mapping[str, Any]) -> dict[str, Any]:
        self.applied.append((node.id, dict(resolved_attributes)))
        keys = self._catalog.outputs_of(node.kind)
        if keys is None:
            keys = ("id", *(k for k in self._referenced.get(node.id, ()) if k != "id"))
        return {key: f"{node.id}.{key}" for key in keys}
