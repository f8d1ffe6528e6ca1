from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
import typer

from cli.config import CLIConfig

NO_DATA_DETAIL = "No data to export."


def _range_params(start: Optional[str], end: Optional[str]) -> Dict[str, str]:
    params: Dict[str, str] = {}
    if start:
        params["start"] = start
    if end:
        params["end"] = end
    return params


def _tag_path(tag_id: str, suffix: str) -> str:
    return f"/tags/{quote(tag_id, safe='')}/{suffix}"


def _detail(response: httpx.Response) -> Optional[str]:
    try:
        data = response.json()
    except ValueError:
        return None
    return data.get("detail") if isinstance(data, dict) else None


class ApiClient:
    """Minimal HTTP client for the sensor readings service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def list_tags(self) -> List[str]:
        payload = self._get_json("/tags")
        return list(payload.get("tag_ids") or [])

    def ingest_documents(self, path: Path) -> Dict[str, Any]:
        try:
            documents = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise typer.BadParameter(f"Could not read documents from {path}: {exc}") from exc
        if isinstance(documents, dict):
            documents = [documents]
        if not isinstance(documents, list):
            raise typer.BadParameter(f"{path} must contain a JSON list of daily documents.")
        return self._request_json("POST", "/documents", json=documents)

    def list_documents(
        self,
        tag_id: Optional[str] = None,
        cursor: Optional[str] = None,
        page_size: Optional[int] = None,
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = _range_params(start, end)
        if tag_id:
            params["tag_id"] = tag_id
        if cursor:
            params["cursor"] = cursor
        if page_size:
            params["page_size"] = page_size
        return self._get_json("/documents", params=params)

    def get_series(self, tag_id: str, start: Optional[str] = None, end: Optional[str] = None) -> Dict[str, Any]:
        return self._get_json(_tag_path(tag_id, "series"), params=_range_params(start, end))

    def get_battery(self, tag_id: str) -> Dict[str, Any]:
        return self._get_json(_tag_path(tag_id, "battery"))

    def export_tag(self, tag_id: str, start: Optional[str] = None, end: Optional[str] = None) -> Optional[str]:
        return self._get_csv(_tag_path(tag_id, "export"), params=_range_params(start, end))

    def export_all(self) -> Optional[str]:
        return self._get_csv("/export")

    def get_session(self) -> Dict[str, Any]:
        return self._get_json("/session")

    def select_tag(self, tag_id: str) -> Dict[str, Any]:
        return self._request_json("PUT", "/session/tag", json={"tag_id": tag_id})

    def set_range(self, start: str, end: str) -> Dict[str, Any]:
        return self._request_json("PUT", "/session/range", json={"start": start, "end": end})

    def refresh_session(self) -> Dict[str, Any]:
        return self._request_json("POST", "/session/refresh")

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._request_json("GET", url, params=params)

    def _request_json(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            self._handle_transport_error(exc)
        return response.json()

    def _get_csv(self, url: str, params: Optional[Dict[str, Any]] = None) -> Optional[str]:
        """Return CSV text, or ``None`` when the service has no rows to export."""
        try:
            response = self._client.get(url, params=params)
            if response.status_code == 404 and _detail(response) == NO_DATA_DETAIL:
                return None
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            self._handle_transport_error(exc)
        return response.text

    def _handle_transport_error(self, exc: httpx.TransportError) -> None:
        typer.secho(
            f"Could not reach {self._config.base_url}: {exc}",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail = _detail(exc.response) or exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
