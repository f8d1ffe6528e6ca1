from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, Optional

import typer

_METRIC_UNITS = (
    ("temperature", "Temperature", "°C"),
    ("humidity", "Humidity", "%"),
    ("battery_level", "Battery Level", "%"),
    ("battery_voltage", "Battery Voltage", "mV"),
)

_HEALTH_COLORS = {
    "Low": typer.colors.RED,
    "Medium": typer.colors.YELLOW,
    "Good": typer.colors.GREEN,
}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def format_timestamp(seconds: Optional[int]) -> str:
    if not seconds:
        return "-"
    return datetime.fromtimestamp(seconds).strftime("%d/%m/%Y %H:%M:%S")


def render_statistics(statistics: Dict[str, Any]) -> None:
    echo_heading("Statistics")
    for key, label, unit in _METRIC_UNITS:
        summary = statistics.get(key)
        if not summary:
            continue
        typer.echo(
            f"{label}: min {summary['min']:.2f} {unit} | max {summary['max']:.2f} {unit} | "
            f"avg {summary['avg']:.2f} {unit} | latest {summary['latest']:.2f} {unit}"
        )
    echo_key_values(
        [
            ("first", format_timestamp(statistics.get("first"))),
            ("last", format_timestamp(statistics.get("last"))),
        ]
    )


def render_battery(battery: Dict[str, Any]) -> None:
    echo_heading("Battery")
    level = battery.get("level")
    voltage = battery.get("voltage")
    if level is None and voltage is None:
        typer.echo("No battery information reported.")
        return
    if level is not None:
        health = battery.get("level_health") or "Unknown"
        typer.secho(f"Level: {level} % ({health})", fg=_HEALTH_COLORS.get(health))
    if voltage is not None:
        health = battery.get("voltage_health") or "Unknown"
        percent = battery.get("voltage_health_percent")
        suffix = f", {percent}% health" if percent is not None else ""
        typer.secho(f"Voltage: {voltage} mV ({health}{suffix})", fg=_HEALTH_COLORS.get(health))


def render_series(payload: Dict[str, Any]) -> None:
    echo_heading(f"Sensor {payload.get('tag_id')}")
    readings = payload.get("readings") or []
    echo_key_values(
        [
            ("range", f"{payload.get('start') or '-'} .. {payload.get('end') or '-'}"),
            ("documents", payload.get("document_count")),
            ("readings", len(readings)),
            ("skipped", payload.get("skipped_count")),
        ]
    )
    typer.echo()
    if readings:
        render_statistics(payload.get("statistics") or {})
    else:
        typer.echo("No data in the selected range.")
    typer.echo()
    render_battery(payload.get("battery") or {})


def render_document_page(payload: Dict[str, Any]) -> None:
    documents = payload.get("documents") or []
    echo_heading(f"Documents ({len(documents)})")
    for document in documents:
        measurements = document.get("measurements") or []
        typer.echo(f"  - {document.get('day')} {document.get('tag_id')}: {len(measurements)} measurements")
    readings = payload.get("readings") or []
    if readings:
        typer.echo()
        echo_heading(f"Recent readings ({len(readings)})")
        for reading in readings:
            typer.echo(
                f"  {format_timestamp(reading.get('timestamp'))} {reading.get('tag_id')}: "
                f"{reading.get('temperature')} °C, {reading.get('humidity')} %"
            )
    if payload.get("has_more") and payload.get("next_cursor"):
        typer.echo(f"next cursor: {payload['next_cursor']}")
    else:
        typer.echo("No more documents.")


def render_session(payload: Dict[str, Any]) -> None:
    echo_heading("Session")
    window = payload.get("window") or {}
    echo_key_values(
        [
            ("generation", payload.get("generation")),
            ("selected_tag", payload.get("selected_tag")),
            ("tags", ", ".join(payload.get("tag_ids") or []) or "-"),
            ("window", f"{window.get('start_day', '-')} .. {window.get('end_day', '-')}"),
            ("calibrated", payload.get("calibrated")),
            ("readings", payload.get("reading_count")),
            ("message", payload.get("message")),
        ]
    )
    if payload.get("last_error"):
        typer.secho(payload["last_error"], fg=typer.colors.RED, err=True)
    if payload.get("has_data"):
        typer.echo()
        render_statistics(payload.get("statistics") or {})
