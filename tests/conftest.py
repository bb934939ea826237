"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import random

import httpx
import pytest

from recall_trainer.audio import ClipPlayer
from recall_trainer.cache import ContentCache
from recall_trainer.errors import DataLoadFailure
from recall_trainer.models import MemoryRecord
from recall_trainer.orchestrator import QuestionOrchestrator
from recall_trainer.session import QuizState

PHOTO_BYTES = b"\x00\x00\x00\x18ftypheic fake photo"
AUDIO_BYTES = b"ID3 fake mp3 data"


class FakeSynthesizer:
    """Records calls; optionally fails or waits on a gate before answering."""

    def __init__(self, side_effect: Exception | None = None, gate: asyncio.Event | None = None):
        self._side_effect = side_effect
        self._gate = gate
        self.calls: list[tuple[str, str]] = []

    async def synthesize(self, voice_id: str, text: str) -> bytes:
        self.calls.append((voice_id, text))
        if self._gate is not None:
            await self._gate.wait()
        if self._side_effect:
            raise self._side_effect
        return AUDIO_BYTES

    def name(self) -> str:
        return "fake-tts"


class FakeSource:
    def __init__(self, records=None, error: Exception | None = None):
        self._records = records or []
        self._error = error
        self.calls = 0

    async def fetch_records(self, limit: int = 200) -> list[MemoryRecord]:
        self.calls += 1
        if self._error:
            raise self._error
        return list(self._records)[:limit]

    def name(self) -> str:
        return "fake-source"


class PhotoServer:
    """httpx handler standing in for the photo CDN."""

    def __init__(self, payload: bytes = PHOTO_BYTES, delay: float = 0.0):
        self.payload = payload
        self.delay = delay
        self.failing: set[str] = set()
        self.slow: set[str] = set()
        self.requests: list[str] = []

    async def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if self.delay or url in self.slow:
            await asyncio.sleep(self.delay or 0.2)
        if url in self.failing:
            return httpx.Response(500, content=b"storage error")
        return httpx.Response(200, content=self.payload, headers={"Content-Type": "image/heic"})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


def make_record(n: int, person: str, location: str = "Home", event: str = "Dinner", voice: str | None = "voice-1"):
    return MemoryRecord(
        id=f"m{n}",
        person_name=person,
        location=location,
        event=event,
        asset_url=f"https://cdn.example.com/photos/m{n}.heic",
        voice_id=voice,
    )


@pytest.fixture
def sample_records():
    """Five memories; Bob appears twice and one person is unknown."""
    return [
        make_record(1, "Alice", "Lake Tahoe", "Birthday party", voice="voice-alice"),
        make_record(2, "Bob", "Grandma's house", "Thanksgiving"),
        make_record(3, "Carol", "Beach", "Summer holiday"),
        make_record(4, "Bob", "Park", "Picnic"),
        make_record(5, "Unknown", "Church", "Wedding", voice=None),
    ]


@pytest.fixture
def seven_records():
    names = ["Alice", "Bob", "Carol", "Dave", "Erin", "Frank", "Grace"]
    places = ["Lake", "Beach", "Park", "Church", "Garden", "Kitchen", "Porch"]
    return [make_record(i + 1, name, places[i], f"Event {i + 1}") for i, name in enumerate(names)]


@pytest.fixture
def photo_server():
    return PhotoServer()


@pytest.fixture
def cache(tmp_path, photo_server):
    return ContentCache(tmp_path / "photos", client=photo_server.client())


@pytest.fixture
def make_quiz(tmp_path, photo_server):
    """Factory for an orchestrator with a loaded session."""

    def _make(records, synthesizer=None, preview_seconds=0.01, default_voice_id=None, seed=7):
        state = QuizState(rng=random.Random(seed))
        state.load(records)
        return QuestionOrchestrator(
            state=state,
            cache=ContentCache(tmp_path / "photos", client=photo_server.client()),
            synthesizer=synthesizer or FakeSynthesizer(),
            player=ClipPlayer(),
            preview_seconds=preview_seconds,
            default_voice_id=default_voice_id,
        )

    return _make


@pytest.fixture
def failing_source():
    return FakeSource(error=DataLoadFailure("connection refused"))
