"""Dependency graph over resource nodes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator

from infraplan.core.errors import DuplicateNodeId, InvalidDependency, UnknownNode
from infraplan.core.nodes import KindCatalog, ResourceNode
from infraplan.core.resolver import ReferenceResolver
from infraplan.observability.logging import get_logger

_log = get_logger("core.graph")


class EdgeKind(str, Enum):
    """How an edge entered the graph."""

    IMPLICIT = "implicit"  # Derived from a Reference in the attributes
    EXPLICIT = "explicit"  # Declared ordering constraint


@dataclass(frozen=True)
class Edge:
    """Ordering constraint: ``source`` is applied before ``target``."""

    source: str
    target: str
    kind: EdgeKind
    output_key: str | None = None

    @property
    def is_implicit(self) -> bool:
        return self.kind == EdgeKind.IMPLICIT

    def __repr__(self) -> str:
        label = f" [{self.output_key}]" if self.output_key else ""
        return f"Edge({self.source} -> {self.target}, {self.kind.value}{label})"


class DependencyGraph:
    """
    Directed graph of resource nodes.

    Nodes keep their declaration order. Multi-edges are allowed and
    harmless for ordering.
    """

    def __init__(
        self,
        nodes: list[ResourceNode],
        edges: list[Edge],
        resolver: ReferenceResolver,
    ) -> None:
        self._nodes = nodes
        self._edges = edges
        self._resolver = resolver
        self._id_index: dict[str, ResourceNode] = {n.id: n for n in nodes}
        self._order: dict[str, int] = {n.id: i for i, n in enumerate(nodes)}
        self._outgoing: dict[str, list[Edge]] = {n.id: [] for n in nodes}
        self._incoming: dict[str, list[Edge]] = {n.id: [] for n in nodes}
        for edge in edges:
            self._outgoing[edge.source].append(edge)
            self._incoming[edge.target].append(edge)

    @property
    def nodes(self) -> list[ResourceNode]:
        return list(self._nodes)

    @property
    def edges(self) -> list[Edge]:
        return list(self._edges)

    @property
    def resolver(self) -> ReferenceResolver:
        return self._resolver

    def get(self, node_id: str) -> ResourceNode:
        """Get node by id, raising if not declared."""
        node = self._id_index.get(node_id)
        if node is None:
            raise UnknownNode(node_id)
        return node

    def declaration_index(self, node_id: str) -> int:
        self.get(node_id)
        return self._order[node_id]

    def outgoing(self, node_id: str) -> list[Edge]:
        self.get(node_id)
        return list(self._outgoing[node_id])

    def incoming(self, node_id: str) -> list[Edge]:
        self.get(node_id)
        return list(self._incoming[node_id])

    def successors(self, node_id: str) -> list[str]:
        """Ids that must wait for *node_id*, unique, in declaration order."""
        return self._unique(e.target for e in self.outgoing(node_id))

    def predecessors(self, node_id: str) -> list[str]:
        """Ids *node_id* waits for, unique, in declaration order."""
        return self._unique(e.source for e in self.incoming(node_id))

    def dependencies_of(self, node_id: str) -> list[str]:
        return self.predecessors(node_id)

    def edges_between(self, source: str, target: str) -> list[Edge]:
        return [e for e in self.outgoing(source) if e.target == target]

    def redundant_edges(self) -> list[Edge]:
        """Explicit edges that duplicate an implicit edge between the same nodes."""
        implicit = {(e.source, e.target) for e in self._edges if e.is_implicit}
        return [
            e for e in self._edges
            if not e.is_implicit and (e.source, e.target) in implicit
        ]

    def _unique(self, ids: Iterable[str]) -> list[str]:
        return sorted(set(ids), key=self._order.__getitem__)

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[ResourceNode]:
        return iter(self._nodes)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._id_index


class GraphBuilder:
    """
    Builds a DependencyGraph from declarations.

    Implicit edges come from references found in attributes; explicit
    edges come from each node's ``depends_on`` and from caller-supplied
    ``(before, after)`` pairs.
    """

    def __init__(self, catalog: KindCatalog | None = None) -> None:
        self._catalog = catalog or KindCatalog.default()

    def build(
        self,
        nodes: Iterable[ResourceNode],
        explicit_edges: Iterable[tuple[str, str]] = (),
    ) -> DependencyGraph:
        """
        Build the graph, failing fast on invalid declarations.

        Raises:
            DuplicateNodeId: two nodes share an id
            DanglingReference: a reference targets an undeclared node
            InvalidDependency: self-loop, or explicit edge to an undeclared node
        """
        ordered: list[ResourceNode] = []
        by_id: dict[str, ResourceNode] = {}
        resolver = ReferenceResolver()

        for node in nodes:
            if node.id in by_id:
                raise DuplicateNodeId(node.id)
            by_id[node.id] = node
            ordered.append(node)
            resolver.declare(node.id, node.attributes)

        resolver.check_targets(by_id, self._catalog)

        edges: list[Edge] = []
        for node in ordered:
            for ref in resolver.references(node.id):
                if ref.target == node.id:
                    raise InvalidDependency(node.id, node.id, "resource references itself")
                edges.append(Edge(ref.target, node.id, EdgeKind.IMPLICIT, ref.output_key))

        declared = [(dep, node.id) for node in ordered for dep in node.depends_on]
        for before, after in [*declared, *explicit_edges]:
            for node_id in (before, after):
                if node_id not in by_id:
                    raise InvalidDependency(before, after, f"'{node_id}' is not declared")
            if before == after:
                raise InvalidDependency(before, after, "resource depends on itself")
            edges.append(Edge(before, after, EdgeKind.EXPLICIT))

        graph = DependencyGraph(ordered, edges, resolver)
        _log.debug("graph_built", nodes=len(ordered), edges=len(edges))
        return graph
