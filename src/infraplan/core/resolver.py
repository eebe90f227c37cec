"""Reference resolution for resource attributes."""

from __future__ import annotations

from typing import Any, Mapping

from infraplan.core.errors import DanglingReference, DuplicateNodeId, UnknownNode, UnresolvedReference
from infraplan.core.nodes import KindCatalog, Reference, ResourceNode, iter_references, substitute

OutputsTable = Mapping[str, Mapping[str, Any]]


class ReferenceResolver:
    """
    Resolves symbolic references in resource attributes.

    Declaring a node only records the references it contains. Values are
    looked up later against an outputs table supplied by the caller, so
    resolution has no side effects.
    """

    def __init__(self) -> None:
        self._attributes: dict[str, Mapping[str, Any]] = {}
        self._references: dict[str, list[Reference]] = {}

    def declare(self, node_id: str, attributes: Mapping[str, Any]) -> list[Reference]:
        """Register a node's attributes and record the references found in them."""
        if node_id in self._attributes:
            raise DuplicateNodeId(node_id)
        self._attributes[node_id] = attributes
        refs = list(iter_references(attributes))
        self._references[node_id] = refs
        return refs

    def references(self, node_id: str) -> list[Reference]:
        """References recorded for a declared node."""
        if node_id not in self._references:
            raise UnknownNode(node_id)
        return list(self._references[node_id])

    def check_targets(self, nodes: Mapping[str, ResourceNode], catalog: KindCatalog) -> None:
        """
        Verify every recorded reference points at a declared node.

        Raises DanglingReference for an undeclared target, or
        UnknownOutputKey when the target's kind does not document the key.
        """
        for source, refs in self._references.items():
            for ref in refs:
                target = nodes.get(ref.target)
                if target is None:
                    raise DanglingReference(source, ref.target, ref.output_key)
                catalog.check(source, target, ref.output_key)

    def resolve(self, node_id: str, output_key: str, outputs: OutputsTable) -> Any:
        """Return the value of *output_key* on *node_id*, once it has been applied."""
        node_outputs = outputs.get(node_id)
        if node_outputs is None or output_key not in node_outputs:
            raise UnresolvedReference(node_id, output_key)
        return node_outputs[output_key]

    def resolve_attributes(self, node_id: str, outputs: OutputsTable) -> dict[str, Any]:
        """Return the node's attributes with every reference replaced by its value."""
        return substitute(
            self._get(node_id),
            lambda ref: self.resolve(ref.target, ref.output_key, outputs),
        )

    def render_attributes(self, node_id: str) -> dict[str, Any]:
        """Return the node's attributes with references shown as placeholders."""
        return substitute(self._get(node_id), lambda ref: ref.placeholder)

    def _get(self, node_id: str) -> Mapping[str, Any]:
        if node_id not in self._attributes:
            raise UnknownNode(node_id)
        return self._attributes[node_id]

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._attributes

    def __len__(self) -> int:
        return len(self._attributes)
