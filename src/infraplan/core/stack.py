"""Declaration surface: collect resources, dependencies and suppressions."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator, Mapping

import yaml

from infraplan.core.errors import DuplicateNodeId, UnknownNode
from infraplan.core.graph import DependencyGraph, GraphBuilder
from infraplan.core.nodes import KindCatalog, ResourceNode
from infraplan.core.planner import PlanGenerator, ProvisioningPlan
from infraplan.core.schema import SettingsSchema, StackSchema
from infraplan.core.suppressions import SuppressionSet


class Stack:
    """
    A named set of resource declarations.

    Declaring a resource, attaching suppressions to it and adding manual
    ordering constraints are three separate operations. ``compile()``
    turns the declarations into a provisioning plan without side effects.
    Each plan gets its own copies of the nodes, so outputs recorded while
    applying one plan never reach another.

    Example:
        stack = Stack("analytics")
        stream = stack.declare("source", "stream", {"stream_name": "kinesis-source"})
        stack.declare("consumer", "stream_consumer", {"stream_arn": stream.ref("stream_arn")})
        stack.suppress("source", "AwsSolutions-KDS3", "Default encryption is sufficient")
        plan = stack.compile()
    """

    def __init__(
        self,
        name: str = "stack",
        catalog: KindCatalog | None = None,
        settings: SettingsSchema | None = None,
    ) -> None:
        self._name = name
        self._catalog = catalog or KindCatalog.default()
        self._settings = settings or SettingsSchema()
        self._nodes: dict[str, ResourceNode] = {}
        self._explicit: list[tuple[str, str]] = []
        self._suppressions = SuppressionSet(())

    @classmethod
    def load(cls, path: str | Path) -> Stack:
        """Load a stack from a YAML declaration file."""
        path = Path(path)
        with path.open() as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Stack:
        """Create a stack from a dictionary, validated against StackSchema."""
        schema = StackSchema(**data)
        catalog = KindCatalog.default().merged(schema.kinds)
        stack = cls(schema.name, catalog, schema.settings)

        for resource in schema.resources:
            stack.declare(
                resource.id,
                resource.kind,
                resource.attributes,
                depends_on=resource.depends_on,
                description=resource.description,
            )
        for suppression in schema.suppressions:
            stack.suppress(suppression.node, suppression.rule, suppression.reason)

        return stack

    @property
    def name(self) -> str:
        return self._name

    @property
    def catalog(self) -> KindCatalog:
        return self._catalog

    @property
    def settings(self) -> SettingsSchema:
        return self._settings

    @property
    def suppressions(self) -> SuppressionSet:
        return self._suppressions

    @property
    def explicit_edges(self) -> list[tuple[str, str]]:
        return list(self._explicit)

    def declare(
        self,
        node_id: str,
        kind: str,
        attributes: Mapping[str, Any] | None = None,
        depends_on: tuple[str, ...] | list[str] = (),
        description: str | None = None,
    ) -> ResourceNode:
        """Declare a resource and return its node."""
        if node_id in self._nodes:
            raise DuplicateNodeId(node_id)
        node = ResourceNode(node_id, kind, attributes, depends_on, description)
        self._nodes[node_id] = node
        self._suppressions.add_node(node_id)
        return node

    def add_dependency(self, node_id: str, *dependencies: str) -> None:
        """Order *node_id* after each of *dependencies* without a data reference."""
        if node_id not in self._nodes:
            raise UnknownNode(node_id)
        for dependency in dependencies:
            self._explicit.append((dependency, node_id))

    def suppress(self, node_id: str, rule_id: str, reason: str) -> None:
        """Attach a policy rule suppression to a declared resource."""
        self._suppressions.suppress(node_id, rule_id, reason)

    def get(self, node_id: str) -> ResourceNode | None:
        return self._nodes.get(node_id)

    def build(self) -> DependencyGraph:
        """Build the dependency graph over fresh copies of the declared nodes."""
        nodes = [node.copy() for node in self._nodes.values()]
        return GraphBuilder(self._catalog).build(nodes, self._explicit)

    def compile(self) -> ProvisioningPlan:
        """Build the dependency graph and generate the provisioning plan."""
        graph = self.build()
        return PlanGenerator().generate(
            graph,
            suppressions=self._suppressions,
            name=self._name,
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the stack as a declaration-file dictionary."""
        resources = [node.to_dict() for node in self._nodes.values()]
        for resource in resources:
            extra = [before for before, after in self._explicit if after == resource["id"]]
            if extra:
                resource["depends_on"] = [*resource.get("depends_on", []), *extra]
        return {
            "schema_version": "1.0",
            "name": self._name,
            "settings": self._settings.model_dump(),
            "resources": resources,
            "suppressions": [r.to_dict() for r in self._suppressions],
        }

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[ResourceNode]:
        return iter(self._nodes.values())

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes
