"""Tests for suppressions module."""

import pytest

from infraplan.core.errors import UnknownNode
from infraplan.core.suppressions import SuppressionRecord, SuppressionSet


@pytest.fixture
def suppressions():
    return SuppressionSet(["vpc", "cluster"])


class TestSuppressionSet:
    """Tests for SuppressionSet class."""

    def test_suppress(self, suppressions):
        record = suppressions.suppress("vpc", "AwsSolutions-VPC7", "No flow logs")

        assert record == SuppressionRecord("vpc", "AwsSolutions-VPC7", "No flow logs")
        assert len(suppressions) == 1

    def test_unknown_node(self, suppressions):
        with pytest.raises(UnknownNode) as exc_info:
            suppressions.suppress("bucket", "AwsSolutions-S1", "reason")
        assert exc_info.value.node_id == "bucket"
        assert len(suppressions) == 0

    def test_last_reason_wins(self, suppressions):
        suppressions.suppress("cluster", "AwsSolutions-EMR2", "reason A")
        suppressions.suppress("cluster", "AwsSolutions-EMR4", "other")
        suppressions.suppress("cluster", "AwsSolutions-EMR2", "reason B")

        records = suppressions.for_node("cluster")
        assert len(records) == 2
        assert suppressions.get("cluster", "AwsSolutions-EMR2").reason == "reason B"
        # First-insertion position is kept
        assert suppressions.rules_for("cluster") == ["AwsSolutions-EMR2", "AwsSolutions-EMR4"]

    def test_multiple_records_per_node(self, suppressions):
        suppressions.suppress("cluster", "AwsSolutions-EMR2", "a")
        suppressions.suppress("cluster", "AwsSolutions-EMR5", "b")
        suppressions.suppress("vpc", "AwsSolutions-VPC7", "c")

        assert suppressions.rules_for("cluster") == ["AwsSolutions-EMR2", "AwsSolutions-EMR5"]
        assert suppressions.rules_for("vpc") == ["AwsSolutions-VPC7"]

    def test_add_node(self, suppressions):
        suppressions.add_node("bucket")
        suppressions.suppress("bucket", "AwsSolutions-S1", "reason")

        assert suppressions.rules_for("bucket") == ["AwsSolutions-S1"]

    def test_to_metadata(self, suppressions):
        suppressions.suppress("vpc", "AwsSolutions-VPC7", "No flow logs")
        suppressions.suppress("cluster", "AwsSolutions-EMR2", "No S3 logging")
        suppressions.suppress("cluster", "AwsSolutions-EMR6", "SSM access")

        assert suppressions.to_metadata() == {
            "vpc": {"rules_to_suppress": [{"id": "AwsSolutions-VPC7", "reason": "No flow logs"}]},
            "cluster": {
                "rules_to_suppress": [
                    {"id": "AwsSolutions-EMR2", "reason": "No S3 logging"},
                    {"id": "AwsSolutions-EMR6", "reason": "SSM access"},
                ]
            },
        }
