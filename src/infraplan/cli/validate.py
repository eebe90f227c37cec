"""Validation CLI command."""

from __future__ import annotations

import click
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from infraplan.cli.main import Context, pass_context
from infraplan.core.errors import CycleError, InfraplanError

console = Console()


@click.command()
@click.option(
    "--strict",
    is_flag=True,
    help="Fail on warnings",
)
@pass_context
def validate(ctx: Context, strict: bool) -> None:
    """
    Validate stack declarations.

    Checks schema compliance, duplicate ids, dangling references,
    invalid dependencies and cycles.

    Examples:

        # Basic validation
        infraplan validate

        # Treat redundant explicit dependencies as errors
        infraplan validate --strict
    """
    errors: list[str] = []
    warnings: list[str] = []

    console.print("[bold]Loading declarations...[/bold]")
    try:
        stack = ctx.stack
        console.print(f"  [green]✓[/green] Stack loaded: {len(stack)} resources")
    except click.ClickException as e:
        errors.append(e.message)
        console.print(f"  [red]✗[/red] {escape(e.message)}")
    except (InfraplanError, ValidationError, yaml.YAMLError) as e:
        errors.append(f"{type(e).__name__}: {e}")
        console.print(f"  [red]✗[/red] Declaration file invalid: {type(e).__name__}")

    if not errors:
        console.print("[bold]Compiling plan...[/bold]")
        try:
            compiled = ctx.plan
            console.print(f"  [green]✓[/green] Plan compiled: {len(compiled)} resources")
        except CycleError as e:
            errors.append(str(e))
            console.print(f"  [red]✗[/red] Cycle: {escape(' -> '.join(e.cycle))}")
        except InfraplanError as e:
            errors.append(f"{type(e).__name__}: {e}")
            console.print(f"  [red]✗[/red] {type(e).__name__}")
        else:
            for edge in compiled.graph.redundant_edges():
                warnings.append(
                    f"Explicit dependency {edge.source} -> {edge.target} duplicates a reference"
                )

    # Summary
    console.print("\n[bold]Validation Summary[/bold]")
    console.print(f"  Errors: {len(errors)}")
    console.print(f"  Warnings: {len(warnings)}")

    if errors:
        console.print("\n[red bold]Validation failed[/red bold]")
        for err in errors:
            console.print(f"  [red]•[/red] {escape(err)}")
        raise SystemExit(1)

    if warnings and strict:
        console.print("\n[yellow bold]Validation failed (strict mode)[/yellow bold]")
        for warn in warnings:
            console.print(f"  [yellow]•[/yellow] {escape(warn)}")
        raise SystemExit(1)

    if warnings:
        console.print("\n[yellow]Warnings:[/yellow]")
        for warn in warnings:
            console.print(f"  [yellow]•[/yellow] {escape(warn)}")

    console.print("\n[green bold]Validation passed[/green bold]")
