"""HatchClient: the daemon's HTTP API endpoints used by hatchlive, via httpx."""

from __future__ import annotations

import os
from typing import Any

import httpx

from .types import HatchLiveConfig, HealthPollError, HealthSnapshot

DEFAULT_BASE_URL = "http://127.0.0.1:42824"


def parse_health(data: Any) -> list[HealthSnapshot]:
    """Build snapshots from a decoded ``/api/health`` body.

    ``null`` means no services. Items that are not objects are skipped.
    """
    if data is None:
        return []
    if not isinstance(data, list):
        raise HealthPollError(f"Expected a JSON array, got {type(data).__name__}")
    return [HealthSnapshot.from_dict(item) for item in data if isinstance(item, dict)]


class HatchClient:
    """Knows where the daemon lives and fetches the health list.

    An ``http_client`` can be injected (tests pass one built on
    ``httpx.MockTransport``); otherwise each call opens its own client.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        logs_path: str = "/api/logs",
        health_path: str = "/api/health",
        timeout: float = 5.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = (base_url or os.environ.get("HATCHLIVE_BASE_URL") or DEFAULT_BASE_URL).rstrip("/")
        self.logs_path = logs_path
        self.health_path = health_path
        self._timeout = timeout
        self._http = http_client

    @classmethod
    def from_config(
        cls, config: HatchLiveConfig, http_client: httpx.AsyncClient | None = None,
    ) -> HatchClient:
        return cls(
            config.daemon.base_url,
            logs_path=config.daemon.logs_path,
            health_path=config.daemon.health_path,
            timeout=config.health.timeout,
            http_client=http_client,
        )

    @property
    def logs_url(self) -> str:
        return self.base_url + self.logs_path

    @property
    def health_url(self) -> str:
        return self.base_url + self.health_path

    async def get_health(self) -> list[HealthSnapshot]:
        """GET the health list. Raises HealthPollError on any failure."""
        try:
            if self._http is not None:
                response = await self._http.get(self.health_url, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(self.health_url)
        except httpx.HTTPError as e:
            raise HealthPollError(f"HTTP error: {e}") from e

        if not response.is_success:
            raise HealthPollError(
                f"HTTP {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        if not response.content.strip():
            return []
        try:
            data = response.json()
        except ValueError as e:
            raise HealthPollError(f"Invalid JSON: {e}", status_code=response.status_code) from e
        return parse_health(data)
