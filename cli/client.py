from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig

READINGS_PATH = "/api/readings"


class ApiClient:
    """Minimal HTTP client for the readings service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def submit_reading(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self._client.post(READINGS_PATH, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        body = response.json()
        data = body.get("data")
        if not isinstance(data, dict):
            raise typer.BadParameter("Unexpected response payload when submitting reading.")
        return data

    def query_readings(
        self,
        from_ms: Optional[int] = None,
        to_ms: Optional[int] = None,
        limit: Optional[int] = None,
        sort: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        params = {
            key: value
            for key, value in (("from", from_ms), ("to", to_ms), ("limit", limit), ("sort", sort))
            if value is not None
        }
        return self._get_readings(READINGS_PATH, params)

    def latest_readings(self, count: Optional[int] = None) -> List[Dict[str, Any]]:
        params = {"count": count} if count is not None else {}
        return self._get_readings(f"{READINGS_PATH}/latest", params)

    def _get_readings(self, path: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        try:
            response = self._client.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        data = response.json().get("data")
        if not isinstance(data, list):
            raise typer.BadParameter("Unexpected response payload when fetching readings.")
        return data

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("message")
            if data.get("error"):
                detail = f"{detail} ({data['error']})"
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
