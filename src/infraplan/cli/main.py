"""Main CLI entry point for infraplan."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from infraplan import __version__
from infraplan.core.errors import InfraplanError
from infraplan.observability.logging import setup_logging

console = Console()

# Default path (can be overridden)
DEFAULT_STACK = "examples/emr-spark-kinesis.yml"


class Context:
    """CLI context object passed to commands."""

    def __init__(self) -> None:
        self.stack_path: Path | None = None
        self.verbose: bool = False
        self._stack: Any = None
        self._plan: Any = None

    @property
    def stack(self) -> Any:
        """Lazy-load stack declarations."""
        if self._stack is None:
            from infraplan.core.stack import Stack

            if self.stack_path and self.stack_path.exists():
                self._stack = Stack.load(self.stack_path)
            else:
                raise click.ClickException(f"Stack file not found: {self.stack_path}")
        return self._stack

    @property
    def plan(self) -> Any:
        """Lazy-compile the provisioning plan."""
        if self._plan is None:
            self._plan = self.stack.compile()
        return self._plan

    def compile_or_exit(self) -> Any:
        """Compile the plan, printing the error and exiting 1 on failure."""
        try:
            return self.plan
        except click.ClickException as e:
            console.print(f"[red]Error:[/red] {escape(e.message)}")
            raise SystemExit(1)
        except (InfraplanError, ValidationError, yaml.YAMLError) as e:
            console.print(f"[red]Error:[/red] {type(e).__name__}: {escape(str(e))}")
            raise SystemExit(1)


pass_context = click.make_pass_decorator(Context, ensure=True)


@click.group()
@click.version_option(version=__version__, prog_name="infraplan")
@click.option(
    "-f",
    "--stack",
    type=click.Path(exists=False, path_type=Path),
    default=DEFAULT_STACK,
    envvar="INFRAPLAN_STACK",
    show_envvar=True,
    help="Path to stack declaration YAML file",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option("--log-json", is_flag=True, help="Emit logs as JSON on stderr")
@pass_context
def cli(ctx: Context, stack: Path, verbose: bool, log_json: bool) -> None:
    """
    Infraplan - Declarative provisioning plans.

    Compile resource declarations into a dependency graph and an
    ordered, deterministic provisioning plan.
    """
    ctx.stack_path = stack
    ctx.verbose = verbose
    setup_logging("debug" if verbose else "warning", json_output=log_json)


# Import and register subcommands
from infraplan.cli.apply import apply
from infraplan.cli.diagram import diagram
from infraplan.cli.docs import docs
from infraplan.cli.plan import plan
from infraplan.cli.suppressions import suppressions
from infraplan.cli.validate import validate

cli.add_command(apply)
cli.add_command(diagram)
cli.add_command(docs)
cli.add_command(plan)
cli.add_command(suppressions)
cli.add_command(validate)


@cli.command()
@pass_context
def info(ctx: Context) -> None:
    """Show stack summary."""
    from rich.table import Table

    plan = ctx.compile_or_exit()
    graph = plan.graph

    console.print(f"\n[bold]Infraplan v{__version__}[/bold]\n")

    console.print("[bold cyan]Stack Summary[/bold cyan]")
    console.print(f"  Path: {ctx.stack_path}")
    console.print(f"  Name: {plan.name}")
    console.print(f"  Resources: {len(plan)}")
    console.print(f"  Edges: {len(graph.edges)} ({sum(e.is_implicit for e in graph.edges)} implicit)")
    console.print(f"  Layers: {len(plan.layers())}")
    console.print(f"  Suppressions: {len(plan.suppressions)}")

    if len(plan) > 0:
        table = Table(title="Resources by Kind")
        table.add_column("Kind", style="cyan")
        table.add_column("Count", justify="right")

        counts: dict[str, int] = {}
        for node in plan:
            counts[node.kind] = counts.get(node.kind, 0) + 1
        for kind, count in sorted(counts.items()):
            table.add_row(kind, str(count))

        console.print(table)


if __name__ == "__main__":
    cli()
