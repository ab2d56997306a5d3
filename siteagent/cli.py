"""CLI for SiteAgent - serve the builder UI or run one build from the terminal."""

from __future__ import annotations

import asyncio
import sys

import click

from siteagent import __version__
from siteagent.config import load_settings
from siteagent.schemas import EventType, ExecutionEvent, RunStatus


@click.group()
@click.version_option(version=__version__, prog_name="siteagent")
def main() -> None:
    """SiteAgent - build websites with Gemini and shell commands.

    The model plans the site one terminal command at a time; commands run
    locally and files land in the output directory.
    """
    pass


@main.command()
@click.option("--port", default=3000, help="Port to run the server on")
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
def serve(port: int, host: str, reload: bool) -> None:
    """Start the SiteAgent WebSocket server."""
    import uvicorn

    click.echo(f"Starting SiteAgent on http://{host}:{port} (WebSocket at /ws)")
    uvicorn.run(
        "siteagent.server:app",
        host=host,
        port=port,
        reload=reload,
    )


def _print_event(event: ExecutionEvent) -> None:
    """Render one event for the terminal."""
    if event.type == EventType.COMMAND_ISSUED:
        click.echo(f"\n> {event.data}")
    elif event.type == EventType.FILE_WRITTEN:
        click.echo(f"Writing to {event.data.path}...")
    elif event.type == EventType.ERROR:
        click.echo(str(event.data), err=True)
    else:
        click.echo(event.data)


@main.command()
@click.argument("problem")
@click.option(
    "--output-dir", "-o",
    default=None,
    help="Directory generated files go into (defaults to SITEAGENT_OUTPUT_DIR)",
)
@click.option("--model", "-m", default=None, help="Gemini model to use")
@click.option("--max-turns", default=None, type=int, help="Maximum model calls (0 = unlimited)")
@click.option("--keep", is_flag=True, help="Keep existing files in the output directory")
def run(
    problem: str,
    output_dir: str | None,
    model: str | None,
    max_turns: int | None,
    keep: bool,
) -> None:
    """Build a site for PROBLEM and print progress.

    \b
    Example:
        siteagent run "a landing page for a coffee shop"
        siteagent run "a calculator" --output-dir calc --max-turns 20
    """
    from pathlib import Path

    from siteagent.agent import run_agent
    from siteagent.model_client import GeminiClient
    from siteagent.workspace import clear_output_dir, ensure_output_dir

    settings = load_settings(
        output_dir=Path(output_dir) if output_dir else None,
        model=model,
        max_turns=max_turns,
    )

    if not keep:
        clear_output_dir(settings.output_root)
    ensure_output_dir(settings.output_root)

    async def emit(event: ExecutionEvent) -> None:
        _print_event(event)

    client = GeminiClient.from_settings(settings)
    result = asyncio.run(run_agent(problem, client, emit, settings=settings))

    if result.status != RunStatus.COMPLETED:
        sys.exit(1)


@main.command()
@click.option("--output-dir", "-o", default=None, help="Directory to clear")
def reset(output_dir: str | None) -> None:
    """Remove all generated files from the output directory."""
    from pathlib import Path

    from siteagent.workspace import clear_output_dir

    settings = load_settings(output_dir=Path(output_dir) if output_dir else None)
    removed = clear_output_dir(settings.output_root)
    click.echo(f"Cleared {removed} entries from {settings.output_root}")


if __name__ == "__main__":
    main()
