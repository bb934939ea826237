"""Speech clip playback for the web shell."""
from __future__ import annotations

import hashlib

from recall_trainer.providers.base import AudioPlayer


def clip_hash(audio: bytes) -> str:
    return hashlib.sha256(audio).hexdigest()[:16]


class ClipPlayer(AudioPlayer):
    """Holds the clip the browser should be playing.

    ``play`` replaces the current clip; ``stop`` drops it so a stale
    question's audio is never served.
    """

    def __init__(self):
        self.clip: bytes | None = None
        self.clip_id: str | None = None
        self.plays = 0

    def play(self, audio: bytes) -> None:
        self.plays += 1
        self.clip = audio
        # Same prompt text twice still gets a fresh id so the browser refetches
        self.clip_id = f"{clip_hash(audio)}-{self.plays}"

    def stop(self) -> None:
        self.clip = None
        self.clip_id = None

    @property
    def is_playing(self) -> bool:
        return self.clip is not None
