from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_battery, render_document_page, render_series, render_session


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Browse, summarize and export day-bucketed sensor readings.",
    context_settings={"help_option_names": ["-h", "--help"]},
)
session_app = typer.Typer(help="Inspect and drive the display session.")
app.add_typer(session_app, name="session")


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


def _write_export(body: Optional[str], output: Path) -> None:
    if body is None:
        typer.secho("No data to export; nothing written.", fg=typer.colors.YELLOW, err=True)
        return
    output.write_text(body, encoding="utf-8")
    rows = max(body.count("\n") - 1, 0)
    typer.secho(f"Exported {rows} rows to {output}", fg=typer.colors.GREEN)


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("tags")
def tags_command(ctx: typer.Context) -> None:
    """List sensor tags present in the store."""
    state = _get_state(ctx)
    tag_ids = state.client.list_tags()
    if not tag_ids:
        typer.echo("No sensor tags found.")
        return
    for tag_id in tag_ids:
        typer.echo(tag_id)


@app.command("ingest")
def ingest_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="JSON file of daily documents."),
) -> None:
    """Store daily documents from a JSON file."""
    state = _get_state(ctx)
    payload = state.client.ingest_documents(file)
    typer.secho(f"Stored {payload.get('document_count')} documents.", fg=typer.colors.GREEN)


@app.command("feed")
def feed_command(
    ctx: typer.Context,
    tag_id: Optional[str] = typer.Option(None, "--tag", help="Only documents for this tag."),
    cursor: Optional[str] = typer.Option(None, "--cursor", help="Cursor printed by the previous page."),
    page_size: Optional[int] = typer.Option(None, "--page-size", min=1),
) -> None:
    """Show one page of daily documents, newest first."""
    state = _get_state(ctx)
    payload = state.client.list_documents(tag_id=tag_id, cursor=cursor, page_size=page_size)
    render_document_page(payload)


@app.command("series")
def series_command(
    ctx: typer.Context,
    tag_id: str = typer.Argument(..., help="Sensor tag identifier."),
    start: Optional[str] = typer.Option(None, "--start", help="First day, YYYY-MM-DD."),
    end: Optional[str] = typer.Option(None, "--end", help="Last day, YYYY-MM-DD."),
) -> None:
    """Summarize a tag's readings."""
    state = _get_state(ctx)
    render_series(state.client.get_series(tag_id, start=start, end=end))


@app.command("battery")
def battery_command(
    ctx: typer.Context,
    tag_id: str = typer.Argument(..., help="Sensor tag identifier."),
) -> None:
    """Show the latest battery status reported by a tag."""
    state = _get_state(ctx)
    render_battery(state.client.get_battery(tag_id))


@app.command("export")
def export_command(
    ctx: typer.Context,
    tag_id: str = typer.Argument(..., help="Sensor tag identifier."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", dir_okay=False, help="CSV file to write."),
    start: Optional[str] = typer.Option(None, "--start", help="First day, YYYY-MM-DD."),
    end: Optional[str] = typer.Option(None, "--end", help="Last day, YYYY-MM-DD."),
) -> None:
    """Export a tag's readings to CSV."""
    state = _get_state(ctx)
    target = output or Path(f"sensor-data-{tag_id}.csv")
    _write_export(state.client.export_tag(tag_id, start=start, end=end), target)


@app.command("export-all")
def export_all_command(
    ctx: typer.Context,
    output: Path = typer.Option(Path("all-sensor-data.csv"), "--output", "-o", dir_okay=False),
) -> None:
    """Export every stored reading to CSV."""
    state = _get_state(ctx)
    _write_export(state.client.export_all(), output)


@session_app.command("show")
def session_show_command(ctx: typer.Context) -> None:
    """Show the current session without reloading."""
    state = _get_state(ctx)
    render_session(state.client.get_session())


@session_app.command("select")
def session_select_command(
    ctx: typer.Context,
    tag_id: str = typer.Argument(..., help="Sensor tag identifier."),
) -> None:
    """Select a tag and load it, calibrating the range on first load."""
    state = _get_state(ctx)
    render_session(state.client.select_tag(tag_id))


@session_app.command("range")
def session_range_command(
    ctx: typer.Context,
    start: str = typer.Argument(..., help="First day, YYYY-MM-DD."),
    end: str = typer.Argument(..., help="Last day, YYYY-MM-DD."),
) -> None:
    """Set the display range manually."""
    state = _get_state(ctx)
    render_session(state.client.set_range(start, end))


@session_app.command("refresh")
def session_refresh_command(ctx: typer.Context) -> None:
    """Reload the selected tag."""
    state = _get_state(ctx)
    render_session(state.client.refresh_session())
