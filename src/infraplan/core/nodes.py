"""Resource nodes, references and the kind catalog."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping

from infraplan.core.errors import InvalidReference, OutputsAlreadyRecorded, UnknownOutputKey

REF_MARKER = "ref"


@dataclass(frozen=True)
class Reference:
    """
    Symbolic pointer to an output of another resource.

    The value only exists once the target has been applied; until then
    it renders as a ``${target.output_key}`` placeholder.
    """

    target: str
    output_key: str

    @classmethod
    def parse(cls, text: str) -> Reference:
        """Parse ``"<resource-id>.<output-key>"``."""
        target, sep, output_key = text.rpartition(".")
        if not sep or not target or not output_key:
            raise InvalidReference(text)
        return cls(target, output_key)

    @classmethod
    def from_value(cls, value: Any) -> Reference | None:
        """Return a Reference if *value* is a ``{"ref": ...}`` marker."""
        if isinstance(value, Reference):
            return value
        if isinstance(value, Mapping) and len(value) == 1 and isinstance(value.get(REF_MARKER), str):
            return cls.parse(value[REF_MARKER])
        return None

    @property
    def placeholder(self) -> str:
        return f"${{{self.target}.{self.output_key}}}"

    def __str__(self) -> str:
        return f"{self.target}.{self.output_key}"


def iter_references(value: Any) -> Iterator[Reference]:
    """Yield every Reference embedded in an attribute value, in order."""
    ref = Reference.from_value(value)
    if ref is not None:
        yield ref
    elif isinstance(value, Mapping):
        for item in value.values():
            yield from iter_references(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from iter_references(item)


def substitute(value: Any, replace: Any) -> Any:
    """Return a copy of *value* with each Reference replaced by ``replace(ref)``."""
    ref = Reference.from_value(value)
    if ref is not None:
        return replace(ref)
    if isinstance(value, Mapping):
        return {k: substitute(v, replace) for k, v in value.items()}
    if isinstance(value, list):
        return [substitute(v, replace) for v in value]
    if isinstance(value, tuple):
        return tuple(substitute(v, replace) for v in value)
    return copy.deepcopy(value)


class ResourceNode:
    """
    One declared infrastructure object.

    The declaration is immutable. Outputs start empty and are recorded
    exactly once, right after the resource has been applied.
    """

    def __init__(
        self,
        id: str,
        kind: str,
        attributes: Mapping[str, Any] | None = None,
        depends_on: Iterable[str] = (),
        description: str | None = None,
    ) -> None:
        """
        Initialize a resource node.

        Args:
            id: Logical name, unique within a stack
            kind: Resource kind tag (open set)
            attributes: Attribute values, literal or Reference
            depends_on: Ids that must be applied before this node
            description: Free-form note shown in reports
        """
        self._id = id
        self._kind = kind
        self._attributes = copy.deepcopy(dict(attributes or {}))
        self._depends_on = tuple(depends_on)
        self._description = description
        self._references = list(iter_references(self._attributes))
        self._outputs: dict[str, Any] | None = None

    @property
    def id(self) -> str:
        return self._id

    @property
    def kind(self) -> str:
        return self._kind

    @property
    def attributes(self) -> Mapping[str, Any]:
        """Read-only view of the declared attributes."""
        return MappingProxyType(self._attributes)

    @property
    def depends_on(self) -> tuple[str, ...]:
        return self._depends_on

    @property
    def description(self) -> str | None:
        return self._description

    @property
    def references(self) -> list[Reference]:
        return list(self._references)

    @property
    def outputs(self) -> Mapping[str, Any]:
        return MappingProxyType(self._outputs or {})

    @property
    def is_applied(self) -> bool:
        return self._outputs is not None

    def ref(self, output_key: str) -> Reference:
        """Reference one of this node's outputs."""
        return Reference(self._id, output_key)

    def copy(self) -> ResourceNode:
        """Return the same declaration with no outputs recorded."""
        return ResourceNode(self._id, self._kind, self._attributes, self._depends_on, self._description)

    def record_outputs(self, outputs: Mapping[str, Any]) -> None:
        """Record provisioning outputs; allowed exactly once."""
        if self._outputs is not None:
            raise OutputsAlreadyRecorded(self._id)
        self._outputs = dict(outputs)

    def to_dict(self) -> dict[str, Any]:
        """Return the declaration as a dictionary (references as markers)."""
        result: dict[str, Any] = {
            "id": self._id,
            "kind": self._kind,
            "attributes": substitute(self._attributes, lambda r: {REF_MARKER: str(r)}),
        }
        if self._depends_on:
            result["depends_on"] = list(self._depends_on)
        if self._description:
            result["description"] = self._description
        return result

    def __repr__(self) -> str:
        state = "applied" if self.is_applied else "pending"
        return f"ResourceNode({self._id}, kind={self._kind}, {state})"


DEFAULT_KINDS: dict[str, tuple[str, ...]] = {
    "network": ("vpc_id", "public_subnet_id", "private_subnet_id"),
    "stream": ("stream_arn", "stream_name"),
    "stream_consumer": ("consumer_arn", "consumer_name"),
    "role": ("role_arn", "role_name"),
    "instance_profile": ("instance_profile_arn", "instance_profile_name"),
    "cluster": ("cluster_id", "master_public_dns"),
}


class KindCatalog:
    """
    Documents the output keys each resource kind produces.

    Kinds form an open set: a kind missing from the catalog accepts
    any output key.
    """

    def __init__(self, kinds: Mapping[str, Iterable[str]] | None = None) -> None:
        self._kinds: dict[str, tuple[str, ...]] = {
            kind: tuple(keys) for kind, keys in (kinds or {}).items()
        }

    @classmethod
    def default(cls) -> KindCatalog:
        return cls(DEFAULT_KINDS)

    def merged(self, kinds: Mapping[str, Iterable[str]]) -> KindCatalog:
        """Return a catalog with *kinds* added over this one."""
        combined = dict(self._kinds)
        combined.update({kind: tuple(keys) for kind, keys in kinds.items()})
        return KindCatalog(combined)

    def outputs_of(self, kind: str) -> tuple[str, ...] | None:
        """Documented output keys, or None for an uncatalogued kind."""
        return self._kinds.get(kind)

    def check(self, source: str, target: ResourceNode, output_key: str) -> None:
        """Raise UnknownOutputKey if *target*'s kind does not produce *output_key*."""
        documented = self.outputs_of(target.kind)
        if documented is not None and output_key not in documented:
            raise UnknownOutputKey(source, target.id, output_key, target.kind)

    def __contains__(self, kind: str) -> bool:
        return kind in self._kinds

    def __iter__(self) -> Iterator[str]:
        return iter(self._kinds)
