from __future__ import annotations

from typing import List

import httpx
import pytest
import typer

from cli.client import ApiClient
from cli.config import CLIConfig


def _client(handler) -> ApiClient:
    client = ApiClient(CLIConfig(base_url="http://sensors.test"))
    client._client = httpx.Client(
        base_url="http://sensors.test", transport=httpx.MockTransport(handler)
    )
    return client


def test_tag_ids_are_quoted_in_paths() -> None:
    seen: List[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.raw_path.decode("ascii"))
        return httpx.Response(200, json={"level": None, "voltage": None})

    client = _client(handler)
    client.get_battery("hall/1?x")

    assert seen == ["/tags/hall%2F1%3Fx/battery"]


def test_export_without_rows_returns_none() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"detail": "No data to export."})

    assert _client(handler).export_all() is None


def test_unrelated_not_found_is_an_error(capsys) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"detail": "Not Found"})

    with pytest.raises(typer.Exit):
        _client(handler).export_tag("A")

    assert "Request failed with status 404: Not Found" in capsys.readouterr().err
