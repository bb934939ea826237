from __future__ import annotations

from abc import ABC, abstractmethod

from recall_trainer.models import MemoryRecord


class SpeechSynthesizer(ABC):
    @abstractmethod
    async def synthesize(self, voice_id: str, text: str) -> bytes:
        """Return encoded audio for *text* spoken in voice *voice_id*."""
        ...

    @abstractmethod
    def name(self) -> str:
        ...


class AudioPlayer(ABC):
    @abstractmethod
    def play(self, audio: bytes) -> None:
        ...

    @abstractmethod
    def stop(self) -> None:
        ...


class MemorySource(ABC):
    @abstractmethod
    async def fetch_records(self, limit: int = 200) -> list[MemoryRecord]:
        """Most recent memories first."""
        ...

    @abstractmethod
    def name(self) -> str:
        ...
