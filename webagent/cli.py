"""CLI for WebAgent - dashboard server and headless agent runs."""

from __future__ import annotations

import json
import sys

import click

from webagent import __version__
from webagent.schemas import LogEntry, LogKind

LOG_COLORS = {
    LogKind.THOUGHT: "bright_black",
    LogKind.ACTION: "cyan",
    LogKind.SYSTEM: "blue",
    LogKind.ERROR: "red",
    LogKind.SUCCESS: "green",
}

CLI_LOG_LEVEL = "WARNING"
LOG_LEVEL_CHOICES = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def log_level_option(func):
    return click.option(
        "--log-level",
        type=click.Choice(LOG_LEVEL_CHOICES, case_sensitive=False),
        default=None,
        help=f"Python log level (defaults to WEBAGENT_LOG_LEVEL, else {CLI_LOG_LEVEL})",
    )(func)


def _echo_log(entry: LogEntry) -> None:
    stamp = entry.timestamp.strftime("%H:%M:%S")
    label = click.style(f"{entry.kind.value.capitalize()}:", fg=LOG_COLORS[entry.kind], bold=True)
    click.echo(f"[{stamp}] {label} {entry.message}")


@click.group()
@click.version_option(version=__version__, prog_name="webagent")
def main() -> None:
    """WebAgent - goal-driven autonomous agent demo.

    Deploy an agent with a goal; Gemini plans the tasks and picks a tool
    for every step until the goal is done.
    """
    pass


@main.command()
@click.option("--port", default=8000, help="Port to run the server on")
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
def serve(port: int, host: str, reload: bool) -> None:
    """Start the WebAgent dashboard server."""
    import uvicorn

    click.echo(f"Starting WebAgent on http://{host}:{port}")
    uvicorn.run(
        "webagent.server:app",
        host=host,
        port=port,
        reload=reload,
    )


@main.command()
@click.argument("goal")
@click.option("--name", "-n", default="Research Agent", help="Agent display name")
@click.option(
    "--max-steps", "-m",
    default=None,
    type=click.IntRange(min=1),
    help="Step budget for the run (defaults to WEBAGENT_MAX_STEPS)",
)
@log_level_option
def run(goal: str, name: str, max_steps: int | None, log_level: str | None) -> None:
    """Run an agent in the terminal, printing its log feed.

    Exits with status 1 unless every task completed.

    \b
    Example:
        webagent run "Find the tallest building in Europe"
        webagent run "Compare two laptops" --name Shopper --max-steps 10
    """
    from webagent.config import ConfigurationError, configure_logging, get_settings
    from webagent.gemini import GeminiService
    from webagent.runner import AgentRun

    settings = get_settings()
    configure_logging(log_level or settings.log_level, default=CLI_LOG_LEVEL)

    try:
        service = GeminiService(settings)
    except ConfigurationError as e:
        raise click.ClickException(str(e))

    agent = AgentRun(
        service,
        max_steps=max_steps or settings.max_steps,
        on_log=_echo_log,
    )

    try:
        if agent.deploy(name, goal):
            agent.run()
    except KeyboardInterrupt:
        agent.cancel()

    snapshot = agent.snapshot()
    if snapshot.tasks:
        click.echo(f"\n{'─' * 60}")
        for task in snapshot.tasks:
            click.echo(f"  {task.id}. [{task.status.value}] {task.text}")

    if snapshot.workspace_content:
        click.echo(f"\n{'─' * 60}")
        click.echo(snapshot.workspace_title)
        click.echo(f"{'─' * 60}")
        click.echo(snapshot.workspace_content)

    sys.exit(0 if agent.all_completed else 1)


@main.command()
@click.argument("goal")
@click.option("--raw", is_flag=True, help="Output raw JSON instead of formatted text")
@log_level_option
def plan(goal: str, raw: bool, log_level: str | None) -> None:
    """Generate the task list for a goal without running it.

    \b
    Example:
        webagent plan "Summarize recent fusion energy breakthroughs"
    """
    from webagent.config import ConfigurationError, configure_logging, get_settings
    from webagent.gemini import GeminiService, GenerativeServiceError

    settings = get_settings()
    configure_logging(log_level or settings.log_level, default=CLI_LOG_LEVEL)

    try:
        tasks = GeminiService(settings).generate_task_list(goal)
    except (ConfigurationError, GenerativeServiceError) as e:
        raise click.ClickException(str(e))

    if raw:
        click.echo(json.dumps({"tasks": tasks}, indent=2))
        return

    if not tasks:
        click.echo("Failed to generate tasks. Please try a different goal.")
        sys.exit(1)

    click.echo(f"Generated {len(tasks)} tasks:\n")
    for i, task in enumerate(tasks, 1):
        click.echo(f"  {i}. {task}")


if __name__ == "__main__":
    main()
