"""Policy rule suppressions attached to resources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Iterator

from infraplan.core.errors import UnknownNode


@dataclass(frozen=True)
class SuppressionRecord:
    """Justification for why *node_id* intentionally does not satisfy *rule_id*."""

    node_id: str
    rule_id: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {"node": self.node_id, "rule": self.rule_id, "reason": self.reason}


class SuppressionSet:
    """
    Suppression records keyed by ``(node_id, rule_id)``.

    Pure metadata for an external policy auditor: it never influences
    edges or plan order. Suppressing the same pair twice keeps one record
    with the latest reason, at the position of the first call.
    """

    def __init__(self, known_ids: Iterable[str]) -> None:
        self._known = set(known_ids)
        self._records: dict[tuple[str, str], SuppressionRecord] = {}

    def suppress(self, node_id: str, rule_id: str, reason: str) -> SuppressionRecord:
        if node_id not in self._known:
            raise UnknownNode(node_id)
        record = SuppressionRecord(node_id, rule_id, reason)
        self._records[(node_id, rule_id)] = record
        return record

    def add_node(self, node_id: str) -> None:
        """Make a newly declared node eligible for suppressions."""
        self._known.add(node_id)

    def for_node(self, node_id: str) -> list[SuppressionRecord]:
        return [r for r in self._records.values() if r.node_id == node_id]

    def rules_for(self, node_id: str) -> list[str]:
        return [r.rule_id for r in self.for_node(node_id)]

    def get(self, node_id: str, rule_id: str) -> SuppressionRecord | None:
        return self._records.get((node_id, rule_id))

    def to_metadata(self) -> dict[str, dict[str, Any]]:
        """
        Render records as auditor metadata.

        Shape: ``{node_id: {"rules_to_suppress": [{"id": ..., "reason": ...}]}}``.
        """
        metadata: dict[str, dict[str, Any]] = {}
        for record in self._records.values():
            entry = metadata.setdefault(record.node_id, {"rules_to_suppress": []})
            entry["rules_to_suppress"].append({"id": record.rule_id, "reason": record.reason})
        return metadata

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[SuppressionRecord]:
        return iter(self._records.values())
