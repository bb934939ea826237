from __future__ import annotations

import logging
import time

import httpx

from recall_trainer.errors import DataLoadFailure
from recall_trainer.models import MemoryRecord, records_from_rows
from recall_trainer.providers.base import MemorySource

log = logging.getLogger("recall_trainer.source")


class SupabaseSource(MemorySource):
    """Read-only query against the memories table over PostgREST."""

    def __init__(
        self,
        url: str,
        key: str = "",
        table: str = "memories_photos",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = url.rstrip("/")
        self.key = key
        self.table = table
        self.timeout = timeout
        self._client = client

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.key:
            headers["apikey"] = self.key
            headers["Authorization"] = f"Bearer {self.key}"
        return headers

    async def fetch_records(self, limit: int = 200) -> list[MemoryRecord]:
        if not self.base_url:
            raise DataLoadFailure("No Supabase URL configured")
        url = f"{self.base_url}/rest/v1/{self.table}"
        params = {"select": "*", "order": "created_at.desc", "limit": str(limit)}
        t0 = time.monotonic()
        try:
            if self._client is not None:
                resp = await self._client.get(url, params=params, headers=self._headers())
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.get(url, params=params, headers=self._headers())
            resp.raise_for_status()
            rows = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise DataLoadFailure(f"Fetching memories failed: {e}") from e
        if not isinstance(rows, list):
            raise DataLoadFailure(f"Unexpected response shape: {type(rows).__name__}")

        records = records_from_rows(r for r in rows if isinstance(r, dict))
        log.info(
            "Fetched %d rows (%d usable) in %.1fs",
            len(rows), len(records), time.monotonic() - t0,
        )
        return records

    def name(self) -> str:
        return f"supabase/{self.table}"
