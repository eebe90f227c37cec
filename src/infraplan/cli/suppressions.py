"""Suppression listing CLI command."""

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
    "--resource",
    "-r",
    "resource_id",
    help="Only show suppressions for this resource",
)
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output auditor metadata as JSON",
)
@pass_context
def suppressions(ctx: Context, resource_id: str | None, output_json: bool) -> None:
    """
    List policy rule suppressions.

    The JSON form is the metadata consumed by the external policy auditor.
    """
    compiled = ctx.compile_or_exit()
    records = list(compiled.suppressions)

    if resource_id:
        if resource_id not in compiled:
            console.print(f"[red]Error:[/red] Unknown resource: {escape(resource_id)}")
            raise SystemExit(1)
        records = compiled.suppressions.for_node(resource_id)

    if output_json:
        metadata = compiled.suppressions.to_metadata()
        if resource_id:
            metadata = {k: v for k, v in metadata.items() if k == resource_id}
        click.echo(json.dumps(metadata, indent=2))
        return

    if not records:
        console.print("[yellow]No suppressions declared[/yellow]")
        return

    table = Table(title="Rule Suppressions")
    table.add_column("Resource", style="cyan")
    table.add_column("Rule")
    table.add_column("Reason")

    for record in records:
        table.add_row(escape(record.node_id), escape(record.rule_id), escape(record.reason))

    console.print(table)
