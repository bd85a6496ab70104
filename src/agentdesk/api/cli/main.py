"""agentdesk CLI entry point."""

from pathlib import Path

import typer
from rich.console import Console

from agentdesk.api.cli.commands import chat, tools
from agentdesk.application.settings import get_settings
from agentdesk.infrastructure.logging_config import configure_logging

app = typer.Typer(
    name="agentdesk",
    help="agentdesk - Multi-turn tool-calling conversation orchestrator",
    add_completion=True,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

app.add_typer(chat.app, name="chat", help="Send messages to an agent")
app.add_typer(tools.app, name="tools", help="Tool management")


@app.callback()
def main(
    ctx: typer.Context,
    profile: str = typer.Option(None, "--profile", "-p", help="Configuration profile"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
    config: Path = typer.Option(None, "--config", "-c", help="YAML settings file (profile, config_dir, log_level, json_logs)"),
):
    """agentdesk CLI."""
    settings = get_settings(config)
    configure_logging("DEBUG" if debug else settings.log_level, settings.json_logs)
    # Store global options in context for subcommands
    ctx.obj = {
        "profile": profile or settings.profile,
        "debug": debug,
        "config_dir": settings.config_dir,
    }


@app.command()
def version():
    """Show agentdesk version."""
    from agentdesk import __version__

    console.print(f"[bold blue]agentdesk[/bold blue] version [cyan]{__version__}[/cyan]")


if __name__ == "__main__":
    app()
