"""Plan CLI command."""

from __future__ import annotations

import json

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from infraplan.cli.main import Context, pass_context

console = Console()


@click.command()
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output the plan artifact as JSON",
)
@pass_context
def plan(ctx: Context, output_json: bool) -> None:
    """
    Show the provisioning plan.

    Lists resources in the order they will be applied.

    Examples:

        # Show the plan as a table
        infraplan plan

        # Emit the plan artifact for an executor
        infraplan -f stack.yml plan --json
    """
    compiled = ctx.compile_or_exit()

    if output_json:
        click.echo(json.dumps(compiled.to_dict(), indent=2, default=str))
        return

    graph = compiled.graph
    table = Table(title=f"Provisioning Plan: {escape(compiled.name)}")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Resource", style="cyan")
    table.add_column("Kind")
    table.add_column("Depends on")
    table.add_column("Suppressed rules", style="yellow")

    for node in compiled:
        table.add_row(
            str(compiled.position(node.id)),
            escape(node.id),
            node.kind,
            escape(", ".join(graph.dependencies_of(node.id))) or "-",
            ", ".join(compiled.suppressions.rules_for(node.id)) or "-",
        )

    console.print(table)
