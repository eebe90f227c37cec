"""Core declaration, graph and planning model."""

from infraplan.core.errors import (
    CycleError,
    DanglingReference,
    DuplicateNodeId,
    InfraplanError,
    InvalidDependency,
    InvalidReference,
    PlanError,
    UnknownNode,
    UnknownOutputKey,
    UnresolvedReference,
)
from infraplan.core.graph import DependencyGraph, Edge, EdgeKind, GraphBuilder
from infraplan.core.nodes import KindCatalog, Reference, ResourceNode
from infraplan.core.planner import PlanGenerator, ProvisioningPlan
from infraplan.core.resolver import ReferenceResolver
from infraplan.core.schema import StackSchema
from infraplan.core.stack import Stack
from infraplan.core.suppressions import SuppressionRecord, SuppressionSet

__all__ = [
    "CycleError",
    "DanglingReference",
    "DependencyGraph",
    "DuplicateNodeId",
    "Edge",
    "EdgeKind",
    "GraphBuilder",
    "InfraplanError",
    "InvalidDependency",
    "InvalidReference",
    "KindCatalog",
    "PlanError",
    "PlanGenerator",
    "ProvisioningPlan",
    "Reference",
    "ReferenceResolver",
    "ResourceNode",
    "Stack",
    "StackSchema",
    "SuppressionRecord",
    "SuppressionSet",
    "UnknownNode",
    "UnknownOutputKey",
    "UnresolvedReference",
]
