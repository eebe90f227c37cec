"""Dry-run apply CLI command."""

from __future__ import annotations

import json

import click
from rich.console import Console
from rich.markup import escape

from infraplan.cli.main import Context, pass_context

console = Console()


@click.command()
@click.option(
    "--parallel",
    is_flag=True,
    help="Apply independent resources of each layer concurrently",
)
@click.option(
    "--max-attempts",
    type=click.IntRange(min=1),
    default=None,
    help="Attempts per resource on retryable errors (default: stack settings)",
)
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=None,
    help="Concurrent applies per layer (default: stack settings)",
)
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output the execution report as JSON",
)
@pass_context
def apply(
    ctx: Context,
    parallel: bool,
    max_attempts: int | None,
    workers: int | None,
    output_json: bool,
) -> None:
    """
    Apply the plan with the dry-run provider.

    Nothing is provisioned: each resource receives fabricated outputs so
    reference resolution and ordering can be exercised end to end.

    Examples:

        # Sequential dry run
        infraplan apply

        # Layered dry run with 8 workers
        infraplan apply --parallel --workers 8
    """
    from infraplan.executor import DryRunProvider, Executor, RetryPolicy

    compiled = ctx.compile_or_exit()
    settings = ctx.stack.settings

    retry = RetryPolicy(
        max_attempts=max_attempts or settings.max_attempts,
        backoff_seconds=settings.backoff_seconds,
        backoff_factor=settings.backoff_factor,
    )
    executor = Executor(
        DryRunProvider.for_plan(compiled, ctx.stack.catalog),
        retry=retry,
        max_workers=workers or settings.max_workers,
    )
    report = executor.run_layers(compiled) if parallel else executor.run(compiled)

    if output_json:
        click.echo(json.dumps(report.to_dict(), indent=2, default=str))
    else:
        for node_id in report.applied:
            console.print(f"  [green]✓[/green] {escape(node_id)}")
        if report.ok:
            console.print(f"\n[green bold]Applied {len(report.applied)} resources[/green bold]")
        else:
            console.print(f"  [red]✗[/red] {escape(str(report.failed_node))}: {escape(str(report.error))}")
            console.print(f"\n[red bold]Apply aborted[/red bold] after {len(report.applied)} resources")

    if not report.ok:
        raise SystemExit(2)
