"""Mermaid diagram generation."""

from __future__ import annotations

import re
from collections import defaultdict
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from infraplan.core.nodes import ResourceNode
    from infraplan.core.planner import ProvisioningPlan


def _safe(text: str) -> str:
    return re.sub(r"\W", "_", text)


def _label(text: str) -> str:
    """Quoted Mermaid label text."""
    return '"' + text.replace('"', "#quot;") + '"'


def node_key(node_id: str) -> str:
    """Mermaid-safe identifier for a resource id."""
    return "n_" + _safe(node_id)


def generate_mermaid(plan: ProvisioningPlan) -> str:
    """
    Generate Mermaid flowchart of the dependency graph.

    Returns Markdown with embedded Mermaid diagram. Resources are grouped
    by kind and labelled with their plan position.
    """
    lines = [f"# {plan.name} dependency graph", "", "```mermaid", "flowchart LR"]

    # Group resources by kind
    kinds: dict[str, list[ResourceNode]] = defaultdict(list)
    for node in plan:
        kinds[node.kind].append(node)

    for kind, nodes in sorted(kinds.items()):
        lines.append(f"    subgraph k_{_safe(kind)}[{_label(kind)}]")
        for node in nodes:
            lines.append(f'        {node_key(node.id)}[{_label(f"{plan.position(node.id)}. {node.id}")}]')
        lines.append("    end")

    lines.append("")
    lines.append("    %% Dependencies")

    for edge in plan.graph.edges:
        source = node_key(edge.source)
        target = node_key(edge.target)
        if edge.is_implicit:
            lines.append(f"    {source} -->|{_label(edge.output_key or '')}| {target}")
        else:
            lines.append(f"    {source} -.-> {target}")

    lines.append("```")
    lines.append("")
    lines.append("## Legend")
    lines.append("")
    lines.append("- `-->` Output reference (label names the output)")
    lines.append("- `-.->` Explicit ordering constraint")

    return "\n".join(lines)
