"""Graphviz DOT diagram generation."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from infraplan.core.nodes import ResourceNode
    from infraplan.core.planner import ProvisioningPlan


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def generate_dot(plan: ProvisioningPlan) -> str:
    """
    Generate Graphviz DOT diagram.

    Can be rendered with: dot -Tpng plan.dot -o plan.png
    """
    lines = [
        f"digraph {_quote(plan.name)} {{",
        "    rankdir=LR;",
        "    node [shape=box, style=filled, fillcolor=lightblue];",
        "    edge [fontsize=10];",
        "",
    ]

    kinds: dict[str, list[ResourceNode]] = defaultdict(list)
    for node in plan:
        kinds[node.kind].append(node)

    for index, (kind, nodes) in enumerate(sorted(kinds.items())):
        lines.append(f"    subgraph cluster_{index} {{")
        lines.append(f"        label={_quote(kind)};")
        lines.append("        style=dashed;")
        lines.append("        color=gray;")
        lines.append("")

        for node in nodes:
            suppressed = plan.suppressions.for_node(node.id)
            # Nodes carrying suppressions stand out for auditors
            fillcolor = "lightyellow" if suppressed else "lightblue"
            label = f"{plan.position(node.id)}. {node.id}"
            lines.append(f"        {_quote(node.id)} [label={_quote(label)}, fillcolor={fillcolor}];")

        lines.append("    }")
        lines.append("")

    lines.append("    // Dependencies")
    for edge in plan.graph.edges:
        if edge.is_implicit:
            style = f"label={_quote(edge.output_key or '')}, color=black"
        else:
            style = "style=dashed, color=gray40"
        lines.append(f"    {_quote(edge.source)} -> {_quote(edge.target)} [{style}];")

    lines.append("}")

    return "\n".join(lines)
