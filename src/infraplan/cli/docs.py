"""Plan report CLI command."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console

from infraplan.cli.main import Context, pass_context

console = Console()


@click.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output file (default: docs/<stack>-plan.md)",
)
@click.option(
    "--stdout",
    is_flag=True,
    help="Print to stdout instead of file",
)
@pass_context
def docs(ctx: Context, output: Path | None, stdout: bool) -> None:
    """
    Generate a Markdown report of the provisioning plan.

    Includes the apply order, concurrent layers, rendered attributes
    and suppression records.
    """
    from infraplan.generators.markdown import generate_plan_doc

    compiled = ctx.compile_or_exit()
    content = generate_plan_doc(compiled)

    if stdout:
        click.echo(content)
        return

    output = output or Path("docs") / f"{compiled.name}-plan.md"
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(content)
    console.print(f"[green]Generated:[/green] {output}")
