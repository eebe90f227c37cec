"""Markdown plan report generation."""

from __future__ import annotations

import json
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from infraplan.core.planner import ProvisioningPlan


def generate_plan_doc(plan: ProvisioningPlan) -> str:
    """Generate a Markdown report: order, layers, resources and suppressions."""
    graph = plan.graph
    lines = [
        f"# Provisioning plan: {plan.name}",
        "",
        f"**Resources:** {len(plan)}  ",
        f"**Edges:** {len(graph.edges)}  ",
        f"**Suppressions:** {len(plan.suppressions)}  ",
        "",
        "## Order",
        "",
        "| # | Resource | Kind | Depends on |",
        "|---|----------|------|------------|",
    ]

    for node in plan:
        deps = ", ".join(graph.dependencies_of(node.id)) or "-"
        lines.append(f"| {plan.position(node.id)} | `{node.id}` | {node.kind} | {deps} |")

    lines.append("")

    # Layers that can be applied concurrently
    lines.extend([
        "## Layers",
        "",
    ])
    for index, layer in enumerate(plan.layers()):
        ids = ", ".join(f"`{n.id}`" for n in layer)
        lines.append(f"{index}. {ids}")

    lines.append("")

    lines.extend([
        "## Resources",
        "",
    ])
    for node in plan:
        lines.append(f"### {node.id}")
        lines.append("")
        if node.description:
            lines.append(node.description)
            lines.append("")
        attributes = graph.resolver.render_attributes(node.id)
        if attributes:
            lines.append("```json")
            lines.append(json.dumps(attributes, indent=2, sort_keys=True, default=str))
            lines.append("```")
        else:
            lines.append("*No attributes declared*")
        lines.append("")

    if len(plan.suppressions):
        lines.extend([
            "## Suppressions",
            "",
            "| Resource | Rule | Reason |",
            "|----------|------|--------|",
        ])
        for record in plan.suppressions:
            lines.append(f"| `{record.node_id}` | {record.rule_id} | {record.reason} |")
        lines.append("")

    redundant = graph.redundant_edges()
    if redundant:
        lines.extend([
            "## Redundant explicit edges",
            "",
        ])
        for edge in redundant:
            lines.append(f"- `{edge.source}` -> `{edge.target}` (already implied by a reference)")
        lines.append("")

    # Footer
    lines.extend([
        "---",
        f"*Generated: {datetime.now().isoformat()}*",
    ])

    return "\n".join(lines)
