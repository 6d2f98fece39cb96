from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the telemetry service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        headers = {}
        if config.user:
            headers[config.identity_header] = config.user
        self._client = httpx.Client(
            base_url=config.base_url, timeout=config.timeout, headers=headers
        )

    def close(self) -> None:
        self._client.close()

    def get_latest(self) -> Optional[Dict[str, Any]]:
        try:
            response = self._client.get("/api/readings/latest")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def get_history(self, timeframe: str) -> List[Dict[str, Any]]:
        try:
            response = self._client.get(
                "/api/readings/history", params={"timeframe": timeframe}
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def generate_report(
        self, report_type: str, start_date: str, end_date: Optional[str] = None
    ) -> str:
        body: Dict[str, Any] = {"type": report_type, "startDate": start_date}
        if end_date:
            body["endDate"] = end_date
        try:
            response = self._client.post("/api/reports/generate", json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.text

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
