"""
Infraplan - Declarative resource dependency graphs and provisioning plans.

This package provides tools for:
- Declaring typed infrastructure resources with symbolic output references
- Building a dependency graph from implicit references and explicit ordering
- Generating deterministic provisioning plans with cycle diagnostics
- Attaching policy rule suppressions for external auditors
- Applying plans through a pluggable provider with retry and backoff
- Rendering dependency diagrams (Mermaid, Graphviz) and plan reports
"""

__version__ = "0.1.0"

from infraplan.core.nodes import Reference, ResourceNode
from infraplan.core.planner import PlanGenerator, ProvisioningPlan
from infraplan.core.stack import Stack

__all__ = [
    "__version__",
    "PlanGenerator",
    "ProvisioningPlan",
    "Reference",
    "ResourceNode",
    "Stack",
]
