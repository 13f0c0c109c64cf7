from __future__ import annotations

import logging
from typing import Any, Collection, Dict, List, Optional

import httpx

from datasource.base import DataSourceError

logger = logging.getLogger(__name__)

AGGREGATED_STATES_PATH = "/api/v1/device_feature/aggregated_states"


class HttpAggregatedStatesSource:
    """Reads aggregated feature history from a remote HTTP API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def aggregated_states(
        self,
        feature_ids: Collection[str],
        interval_minutes: int,
        max_points: int = 100,
    ) -> List[Dict[str, Any]]:
        params = {
            "interval": interval_minutes,
            "max_states": max_points,
            "device_features": ",".join(sorted(feature_ids)),
        }
        try:
            response = await self._client.get(AGGREGATED_STATES_PATH, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise DataSourceError(
                f"Aggregated states request failed with status {exc.response.status_code}."
            ) from exc
        except httpx.HTTPError as exc:
            raise DataSourceError(f"Aggregated states request failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise DataSourceError("Aggregated states response is not valid JSON.") from exc
        if not isinstance(payload, list):
            raise DataSourceError("Aggregated states response must be a list.")
        logger.debug(
            "Fetched %d aggregated feature records",
            len(payload),
            extra={"feature_ids": list(feature_ids), "interval_minutes": interval_minutes},
        )
        return payload

    async def close(self) -> None:
        await self._client.aclose()
