"""Tests for resolver module."""

import pytest

from infraplan.core.errors import DanglingReference, DuplicateNodeId, UnknownNode, UnknownOutputKey, UnresolvedReference
from infraplan.core.nodes import KindCatalog, Reference, ResourceNode
from infraplan.core.resolver import ReferenceResolver


@pytest.fixture
def resolver():
    """Resolver with a role and a profile naming it."""
    resolver = ReferenceResolver()
    resolver.declare("role", {"assumed_by": "ec2.amazonaws.com"})
    resolver.declare(
        "profile",
        {"name": "emr-profile", "roles": [{"ref": "role.role_name"}], "arn": Reference("role", "role_arn")},
    )
    return resolver


class TestReferenceResolver:
    """Tests for ReferenceResolver class."""

    def test_declare_records_references(self, resolver):
        assert resolver.references("role") == []
        assert resolver.references("profile") == [
            Reference("role", "role_name"),
            Reference("role", "role_arn"),
        ]

    def test_declare_duplicate(self, resolver):
        with pytest.raises(DuplicateNodeId):
            resolver.declare("role", {})

    def test_references_unknown_node(self, resolver):
        with pytest.raises(UnknownNode):
            resolver.references("nonexistent")

    def test_resolve(self, resolver):
        outputs = {"role": {"role_name": "emr-job-role"}}

        assert resolver.resolve("role", "role_name", outputs) == "emr-job-role"

    def test_resolve_before_apply(self, resolver):
        with pytest.raises(UnresolvedReference) as exc_info:
            resolver.resolve("role", "role_name", {})
        assert exc_info.value.node_id == "role"
        assert exc_info.value.output_key == "role_name"

    def test_resolve_missing_key(self, resolver):
        with pytest.raises(UnresolvedReference):
            resolver.resolve("role", "role_arn", {"role": {"role_name": "x"}})

    def test_resolve_attributes(self, resolver):
        outputs = {"role": {"role_name": "emr-job-role", "role_arn": "arn:aws:iam::1:role/emr"}}

        resolved = resolver.resolve_attributes("profile", outputs)

        assert resolved == {
            "name": "emr-profile",
            "roles": ["emr-job-role"],
            "arn": "arn:aws:iam::1:role/emr",
        }

    def test_resolve_attributes_is_pure(self, resolver):
        outputs = {"role": {"role_name": "emr-job-role", "role_arn": "arn"}}
        resolver.resolve_attributes("profile", outputs)

        assert resolver.references("profile") == [
            Reference("role", "role_name"),
            Reference("role", "role_arn"),
        ]
        assert outputs == {"role": {"role_name": "emr-job-role", "role_arn": "arn"}}

    def test_render_attributes(self, resolver):
        rendered = resolver.render_attributes("profile")

        assert rendered["roles"] == ["${role.role_name}"]
        assert rendered["arn"] == "${role.role_arn}"

    def test_check_targets_dangling(self):
        resolver = ReferenceResolver()
        resolver.declare("x", {"peer": {"ref": "y.id"}})

        with pytest.raises(DanglingReference) as exc_info:
            resolver.check_targets({"x": ResourceNode("x", "widget")}, KindCatalog())
        assert exc_info.value.source == "x"
        assert exc_info.value.target == "y"

    def test_check_targets_unknown_output(self, resolver):
        nodes = {
            "role": ResourceNode("role", "role"),
            "profile": ResourceNode("profile", "instance_profile"),
        }
        resolver.declare("cluster", {"role": {"ref": "role.role_id"}})
        nodes["cluster"] = ResourceNode("cluster", "cluster")

        with pytest.raises(UnknownOutputKey):
            resolver.check_targets(nodes, KindCatalog.default())
