"""Chat command - Send a message to an agent and show the turn result."""

import asyncio
import json

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from agentdesk.application.executor import ChatExecutor
from agentdesk.application.factory import AgentDeskFactory
from agentdesk.core.domain.models import RunLimits, ToolDetail, TurnRequest, TurnResult, TurnState

app = typer.Typer(help="Send messages to an agent")
console = Console()

_STATE_STYLES = {
    TurnState.DONE: "green",
    TurnState.LIMIT_REACHED: "yellow",
    TurnState.BLOCKED: "red",
    TurnState.FAILED: "bold red",
}


def _create_executor(config_dir: str) -> ChatExecutor:
    return ChatExecutor(factory=AgentDeskFactory(config_dir=config_dir))


def _print_result(result: TurnResult, debug: bool) -> None:
    style = _STATE_STYLES.get(result.state, "white")
    body = result.output_text if result.output_text is not None else (result.error or "")
    console.print(Panel(body, title=f"[{style}]{result.state.value}[/{style}]", border_style=style))

    if result.tool_results:
        table = Table(title="Tool Calls")
        table.add_column("Tool", style="cyan")
        table.add_column("Status")
        table.add_column("Details", style="white")
        for tool_result in result.tool_results:
            data = tool_result.to_dict()
            if tool_result.succeeded:
                details = json.dumps(data.get("output"), ensure_ascii=False, default=str)[:120]
                status = "[green]success[/green]"
            else:
                error = data["errorDetails"]
                details = f"{error['code']}: {error['message']}"[:120]
                status = "[red]error[/red]"
            table.add_row(tool_result.tool_name, status, details)
        console.print(table)

    if result.generated_artifact:
        console.print(f"[bold]Artifact:[/bold] {result.generated_artifact.file_name} ({result.generated_artifact.file_type})")

    if debug:
        for event in result.execution_trace:
            console.print(f"[dim]{event.kind.value}[/dim] {event.title}: {event.details or ''}")
    console.print(f"[dim]Model calls: {result.model_calls}[/dim]")


@app.command("send")
def send(
    ctx: typer.Context,
    message: str = typer.Argument(..., help="User message"),
    model: str = typer.Option("", "--model", "-m", help="Model identifier (profile default if omitted)"),
    tool: list[str] = typer.Option([], "--tool", "-t", help="Enable a registered tool by id (repeatable)"),
    force_tools: bool = typer.Option(False, "--force-tools", help="Fabricate a tool call if the model makes none"),
    max_model_calls: int = typer.Option(None, "--max-model-calls", min=1, help="Override the model-call limit"),
    framework: str = typer.Option(None, "--framework", help="Alternate framework (crewai, langchain, workflow)"),
    system_prompt: str = typer.Option(None, "--system-prompt", help="System prompt"),
    agent_id: str = typer.Option("cli-agent", "--agent-id", help="Agent identifier"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw turn result as JSON"),
):
    """Run one conversation turn."""
    global_opts = ctx.obj or {}
    profile = global_opts.get("profile", "dev")
    debug = global_opts.get("debug", False)

    executor = _create_executor(global_opts.get("config_dir", "configs"))
    try:
        runtime = executor.get_runtime(profile)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    limits = runtime.run_limits
    if max_model_calls is not None:
        limits = RunLimits(max_tool_iterations=limits.max_tool_iterations, max_model_calls=max_model_calls)

    request = TurnRequest(
        agent_id=agent_id,
        user_message=message,
        model=model,
        system_prompt=system_prompt,
        enabled_tools=[ToolDetail(id=tool_id, name=tool_id) for tool_id in tool],
        force_tool_usage=force_tools,
        run_limits=limits,
        framework=framework,
    )
    result = asyncio.run(executor.execute_turn(request, profile=profile))

    if as_json:
        console.print_json(data=result.to_dict())
    else:
        _print_result(result, debug)

    if result.state is TurnState.FAILED:
        raise typer.Exit(1)
