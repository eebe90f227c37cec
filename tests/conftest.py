"""Shared fixtures."""

from pathlib import Path

import pytest
import structlog

EXAMPLES = Path(__file__).resolve().parent.parent / "examples"


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop any logging configuration a CLI invocation installed."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def example_stack_path():
    return EXAMPLES / "emr-spark-kinesis.yml"


@pytest.fixture
def stack_data():
    """Small stack declaration: roles, a profile naming one, and a cluster."""
    return {
        "schema_version": "1.0",
        "name": "analytics",
        "resources": [
            {
                "id": "vpc",
                "kind": "network",
                "attributes": {"max_azs": 2},
            },
            {
                "id": "service-role",
                "kind": "role",
                "attributes": {"assumed_by": "elasticmapreduce.amazonaws.com"},
            },
            {
                "id": "job-role",
                "kind": "role",
                "attributes": {"assumed_by": "ec2.amazonaws.com"},
            },
            {
                "id": "profile",
                "kind": "instance_profile",
                "attributes": {"roles": [{"ref": "job-role.role_name"}]},
            },
            {
                "id": "cluster",
                "kind": "cluster",
                "attributes": {
                    "service_role": {"ref": "service-role.role_name"},
                    "job_flow_role": {"ref": "profile.instance_profile_name"},
                    "instances": {"subnet_id": {"ref": "vpc.public_subnet_id"}},
                },
                "depends_on": ["job-role"],
            },
        ],
        "suppressions": [
            {"node": "vpc", "rule": "AwsSolutions-VPC7", "reason": "No flow logs"},
            {"node": "cluster", "rule": "AwsSolutions-EMR2", "reason": "No S3 logging"},
        ],
    }
