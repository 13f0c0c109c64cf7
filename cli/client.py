from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the chart widget service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def create_widget(
        self,
        feature_ids: List[str],
        interval: Optional[str] = None,
        title: Optional[str] = None,
        unit: Optional[str] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"feature_ids": feature_ids}
        if interval is not None:
            body["interval"] = interval
        if title is not None:
            body["title"] = title
        if unit is not None:
            body["unit"] = unit
        return self._request("POST", "/widgets", json=body)

    def get_state(self, widget_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/widgets/{widget_id}")

    def select_interval(self, widget_id: str, window: str) -> Dict[str, Any]:
        return self._request("POST", f"/widgets/{widget_id}/interval", json={"window": window})

    def publish_state(
        self,
        feature_id: str,
        device_name: str,
        value: Optional[float],
    ) -> Dict[str, Any]:
        body = {"feature_id": feature_id, "device_name": device_name, "value": value}
        return self._request("POST", "/states", json=body)

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = self._client.request(method, path, **kwargs)
            if response.status_code == 404:
                raise typer.BadParameter(f"Resource {path} was not found.")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(f"Could not reach {self._config.base_url}: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1) from exc
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: Any = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except ValueError:
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
