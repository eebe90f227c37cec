"""Provisioning plan generation."""

from __future__ import annotations

import heapq
from collections import deque
from typing import Any, Iterator, Sequence

from infraplan.core.errors import CycleError, UnknownNode
from infraplan.core.graph import DependencyGraph
from infraplan.core.nodes import ResourceNode
from infraplan.core.suppressions import SuppressionSet
from infraplan.observability.logging import get_logger

_log = get_logger("core.planner")


class ProvisioningPlan:
    """
    Ordered sequence of resource nodes.

    For every edge the source precedes the target. The graph stays
    attached so an executor can apply independent nodes in parallel.
    """

    def __init__(
        self,
        nodes: list[ResourceNode],
        graph: DependencyGraph,
        suppressions: SuppressionSet | None = None,
        name: str = "stack",
    ) -> None:
        self._nodes = nodes
        self._graph = graph
        self._suppressions = suppressions or SuppressionSet(n.id for n in nodes)
        self._name = name
        self._position = {n.id: i for i, n in enumerate(nodes)}

    @property
    def name(self) -> str:
        return self._name

    @property
    def nodes(self) -> list[ResourceNode]:
        return list(self._nodes)

    @property
    def order(self) -> list[str]:
        return [n.id for n in self._nodes]

    @property
    def graph(self) -> DependencyGraph:
        return self._graph

    @property
    def suppressions(self) -> SuppressionSet:
        return self._suppressions

    def position(self, node_id: str) -> int:
        if node_id not in self._position:
            raise UnknownNode(node_id)
        return self._position[node_id]

    def layers(self) -> list[list[ResourceNode]]:
        """
        Group nodes into BFS layers.

        Every dependency of a node sits in an earlier layer, so the nodes of
        one layer can be applied concurrently. Layers keep declaration order.
        """
        depth: dict[str, int] = {}
        for node in self._nodes:
            preds = self._graph.predecessors(node.id)
            depth[node.id] = 1 + max((depth[p] for p in preds), default=-1)

        layers: list[list[ResourceNode]] = [[] for _ in range(max(depth.values(), default=-1) + 1)]
        for node in self._graph:
            layers[depth[node.id]].append(node)
        return layers

    def to_dict(self) -> dict[str, Any]:
        """JSON-serialisable plan artifact."""
        resolver = self._graph.resolver
        return {
            "name": self._name,
            "order": self.order,
            "layers": [[n.id for n in layer] for layer in self.layers()],
            "resources": [
                {
                    "position": i,
                    "id": node.id,
                    "kind": node.kind,
                    "depends_on": self._graph.dependencies_of(node.id),
                    "attributes": resolver.render_attributes(node.id),
                    "suppressions": [r.to_dict() for r in self._suppressions.for_node(node.id)],
                }
                for i, node in enumerate(self._nodes)
            ],
            "edges": [
                {"from": e.source, "to": e.target, "kind": e.kind.value, "output": e.output_key}
                for e in self._graph.edges
            ],
        }

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[ResourceNode]:
        return iter(self._nodes)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._position

    def __repr__(self) -> str:
        return f"ProvisioningPlan({self._name}, {len(self._nodes)} resources)"


class PlanGenerator:
    """
    Topologically orders a dependency graph.

    Kahn's algorithm with a declaration-order tie break: among nodes whose
    dependencies are all satisfied, the earliest declared goes first. The
    same graph therefore always yields the same plan.
    """

    def generate(
        self,
        graph: DependencyGraph,
        declaration_order: Sequence[str] | None = None,
        suppressions: SuppressionSet | None = None,
        name: str = "stack",
    ) -> ProvisioningPlan:
        """
        Produce a provisioning plan.

        Raises:
            CycleError: the graph contains a cycle; carries the shortest one
        """
        rank = self._rank(graph, declaration_order)

        indegree = {node.id: len(graph.incoming(node.id)) for node in graph}
        ready = [(rank[nid], nid) for nid, deg in indegree.items() if deg == 0]
        heapq.heapify(ready)

        ordered: list[ResourceNode] = []
        while ready:
            _, node_id = heapq.heappop(ready)
            ordered.append(graph.get(node_id))
            for edge in graph.outgoing(node_id):
                indegree[edge.target] -= 1
                if indegree[edge.target] == 0:
                    heapq.heappush(ready, (rank[edge.target], edge.target))

        if len(ordered) < len(graph):
            emitted = {n.id for n in ordered}
            remaining = [
                nid for nid in sorted(rank, key=rank.__getitem__)
                if nid in indegree and nid not in emitted
            ]
            cycle = self.find_cycle(graph, remaining)
            _log.error("plan_cycle_detected", cycle=cycle)
            raise CycleError(cycle)

        _log.info("plan_generated", name=name, resources=len(ordered), edges=len(graph.edges))
        return ProvisioningPlan(ordered, graph, suppressions, name)

    @staticmethod
    def _rank(graph: DependencyGraph, declaration_order: Sequence[str] | None) -> dict[str, int]:
        if declaration_order is None:
            return {node.id: i for i, node in enumerate(graph)}
        rank = {node_id: i for i, node_id in enumerate(declaration_order)}
        missing = [node.id for node in graph if node.id not in rank]
        if missing:
            raise UnknownNode(missing[0])
        return rank

    @staticmethod
    def find_cycle(graph: DependencyGraph, candidates: Sequence[str]) -> list[str]:
        """
        Find the shortest cycle among *candidates*.

        Candidates are tried in the given order, so among equally short
        cycles the one through the earliest candidate wins, and it is
        returned starting at that candidate.
        """
        allowed = set(candidates)
        best: list[str] | None = None

        for start in candidates:
            parent: dict[str, str] = {}
            queue = deque([start])
            seen = {start}
            found: str | None = None
            while queue and found is None:
                current = queue.popleft()
                for nxt in graph.successors(current):
                    if nxt not in allowed:
                        continue
                    if nxt == start:
                        found = current
                        break
                    if nxt not in seen:
                        seen.add(nxt)
                        parent[nxt] = current
                        queue.append(nxt)
            if found is None:
                continue

            path = [found]
            while path[-1] != start:
                path.append(parent[path[-1]])
            path.reverse()
            if best is None or len(path) < len(best):
                best = path

        if best is None:
            raise ValueError("No cycle among the given nodes")
        return best
