"""Tools command - List and inspect available tools."""

import typer
from rich.console import Console
from rich.table import Table

from agentdesk.application.factory import AgentDeskFactory

app = typer.Typer(help="Tool management")
console = Console()


def _load_registry(ctx: typer.Context):
    global_opts = ctx.obj or {}
    factory = AgentDeskFactory(config_dir=global_opts.get("config_dir", "configs"))
    try:
        return factory.create_runtime(profile=global_opts.get("profile", "dev")).tool_registry
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


@app.command("list")
def list_tools(ctx: typer.Context):
    """List available tools."""
    registry = _load_registry(ctx)

    table = Table(title="Available Tools")
    table.add_column("Id", style="cyan")
    table.add_column("Name", style="cyan")
    table.add_column("Description", style="white")

    for descriptor in sorted(registry.descriptors.values(), key=lambda d: d.name):
        table.add_row(descriptor.id, descriptor.name, descriptor.description)

    console.print(table)


@app.command("inspect")
def inspect_tool(
    ctx: typer.Context,
    tool_name: str = typer.Argument(..., help="Tool name to inspect"),
):
    """Inspect tool details and parameters."""
    registry = _load_registry(ctx)
    descriptor = registry.get(tool_name)

    if not descriptor:
        console.print(f"[red]Tool '{tool_name}' not found[/red]")
        raise typer.Exit(1)

    console.print(f"\n[bold cyan]{descriptor.name}[/bold cyan]")
    console.print(f"{descriptor.description}\n")

    console.print("[bold]Parameters:[/bold]")
    console.print_json(data=descriptor.input_schema)
