"""Tests for the Supabase memory source."""
from __future__ import annotations

import httpx
import pytest

from recall_trainer.errors import DataLoadFailure
from recall_trainer.providers.source_supabase import SupabaseSource

ROWS = [
    {"id": "a1", "person_name": "Alice", "location": "Lake", "event": "Party",
     "image_url": "https://cdn.example.com/a1.heic", "voice_id": "v-1", "created_at": "2025-06-01T10:00:00Z"},
    {"id": "a2", "person_name": "", "location": None, "event": "Picnic",
     "image_url": "https://cdn.example.com/a2.heic", "voice_id": None, "created_at": "2025-05-01T10:00:00Z"},
    {"id": "a3", "person_name": "Bob", "location": "Park", "event": "Walk",
     "image_url": "", "created_at": "2025-04-01T10:00:00Z"},
]


def _source(handler, **kwargs) -> SupabaseSource:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SupabaseSource("https://project.supabase.co/", key="anon-key", client=client, **kwargs)


class TestFetchRecords:
    @pytest.mark.asyncio
    async def test_query_shape(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=ROWS)

        await _source(handler).fetch_records(limit=50)

        [req] = seen
        assert req.url.path == "/rest/v1/memories_photos"
        assert req.url.params["select"] == "*"
        assert req.url.params["order"] == "created_at.desc"
        assert req.url.params["limit"] == "50"
        assert req.headers["apikey"] == "anon-key"
        assert req.headers["authorization"] == "Bearer anon-key"

    @pytest.mark.asyncio
    async def test_rows_normalized(self):
        records = await _source(lambda r: httpx.Response(200, json=ROWS)).fetch_records()

        assert [r.id for r in records] == ["a1", "a2"]
        assert records[1].person_name == "Unknown"
        assert records[1].location == "Unknown"
        assert records[1].voice_id is None
        assert records[0].asset_url == "https://cdn.example.com/a1.heic"

    @pytest.mark.asyncio
    async def test_custom_table(self):
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(200, json=[])

        await _source(handler, table="family_photos").fetch_records()
        assert seen == ["/rest/v1/family_photos"]

    @pytest.mark.asyncio
    async def test_http_error(self):
        source = _source(lambda r: httpx.Response(500, text="boom"))
        with pytest.raises(DataLoadFailure):
            await source.fetch_records()

    @pytest.mark.asyncio
    async def test_bad_json(self):
        source = _source(lambda r: httpx.Response(200, text="<html>"))
        with pytest.raises(DataLoadFailure):
            await source.fetch_records()

    @pytest.mark.asyncio
    async def test_unexpected_shape(self):
        source = _source(lambda r: httpx.Response(200, json={"message": "nope"}))
        with pytest.raises(DataLoadFailure):
            await source.fetch_records()

    @pytest.mark.asyncio
    async def test_missing_url(self):
        with pytest.raises(DataLoadFailure):
            await SupabaseSource("").fetch_records()

    def test_no_key_no_auth_headers(self):
        headers = SupabaseSource("https://project.supabase.co")._headers()
        assert "apikey" not in headers
        assert "Authorization" not in headers
