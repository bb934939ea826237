"""Per-question flow: cache the photo, preview it, speak the prompt, reveal.

Every question gets a token. Background work (download, speech, countdown)
carries the token it was started with and drops its result if the session
has moved on, so a slow task from question N never touches question N+1.
"""
from __future__ import annotations

import asyncio
import enum
import logging
from pathlib import Path

from recall_trainer.cache import ContentCache
from recall_trainer.errors import AssetFetchFailure, SpeechFailure, SynthesisUnconfigured
from recall_trainer.models import MemoryRecord
from recall_trainer.providers.base import AudioPlayer, MemorySource, SpeechSynthesizer
from recall_trainer.session import QuizState, SessionStatus

log = logging.getLogger("recall_trainer.quiz")

DEFAULT_PREVIEW_SECONDS = 6.0
ASSET_ERROR_MESSAGE = "Failed to download image."


class Phase(enum.Enum):
    IDLE = "idle"
    CACHING = "caching"
    PREVIEWING = "previewing"
    REVEALED = "revealed"


class QuestionOrchestrator:
    def __init__(
        self,
        state: QuizState,
        cache: ContentCache,
        synthesizer: SpeechSynthesizer,
        player: AudioPlayer,
        preview_seconds: float = DEFAULT_PREVIEW_SECONDS,
        default_voice_id: str | None = None,
    ):
        self.state = state
        self.cache = cache
        self.synthesizer = synthesizer
        self.player = player
        self.preview_seconds = preview_seconds
        self.default_voice_id = default_voice_id or None

        self.phase = Phase.IDLE
        self.preview_path: Path | None = None
        self.asset_error: str | None = None
        self.question_token = 0

        self._loop: asyncio.AbstractEventLoop | None = None
        self._flow: asyncio.Task | None = None
        self._countdown: asyncio.Task | None = None
        self._speech: asyncio.Task | None = None

    # ── Owning context ────────────────────────────────────────────────────

    def _owned(self) -> None:
        """Bind to the first event loop that drives us; reject any other."""
        loop = asyncio.get_running_loop()
        if self._loop is None:
            self._loop = loop
        elif loop is not self._loop:
            raise RuntimeError("QuestionOrchestrator used outside its owning event loop")

    def _is_current(self, token: int) -> bool:
        return token == self.question_token

    def _cancel_outstanding(self) -> None:
        for task in (self._flow, self._countdown, self._speech):
            if task is not None and not task.done():
                task.cancel()
        self._flow = self._countdown = self._speech = None
        self.player.stop()

    def _stand_down(self) -> None:
        """Drop the current question entirely; late results see a stale token."""
        self._cancel_outstanding()
        self.question_token += 1
        self.preview_path = None
        self.asset_error = None
        self.phase = Phase.IDLE

    # ── Session actions ───────────────────────────────────────────────────

    async def load(self, source: MemorySource, limit: int = 200) -> int:
        self._owned()
        records = await source.fetch_records(limit)
        self._stand_down()
        self.state.load(records)
        return self.state.total

    def start(self) -> asyncio.Task:
        return self.enter_question()

    def enter_question(self) -> asyncio.Task:
        self._owned()
        if self.state.status is not SessionStatus.ACTIVE:
            raise RuntimeError("No active question to present")
        self._cancel_outstanding()
        self.question_token += 1
        self.preview_path = None
        self.asset_error = None
        self.phase = Phase.CACHING
        self._flow = asyncio.create_task(self._run_question(self.question_token, self.state.current_record))
        return self._flow

    def select(self, option: str) -> bool:
        self._owned()
        return self.state.select(option)

    def advance(self) -> asyncio.Task | None:
        self._owned()
        if self.state.status is SessionStatus.NOT_LOADED:
            return None
        self.state.next()
        if self.state.status is SessionStatus.COMPLETE:
            self._stand_down()
            return None
        return self.enter_question()

    def restart(self, reshuffle: bool = False) -> asyncio.Task | None:
        self._owned()
        if self.state.status is SessionStatus.NOT_LOADED:
            return None
        self.state.restart(reshuffle=reshuffle)
        return self.enter_question()

    async def replay_preview(self) -> bool:
        """Show the current photo again without speaking or hiding the question."""
        self._owned()
        if self.state.status is not SessionStatus.ACTIVE or self.phase in (Phase.IDLE, Phase.CACHING):
            return False
        token = self.question_token
        try:
            local = await self.cache.ensure(self.state.current_record.asset_url)
        except AssetFetchFailure as e:
            log.warning("Replay download failed: %s", e)
            if self._is_current(token):
                self.asset_error = ASSET_ERROR_MESSAGE
            return False
        if not self._is_current(token):
            return False

        if self._countdown is not None and not self._countdown.done():
            self._countdown.cancel()
        reveal = self.phase is not Phase.REVEALED
        self.preview_path = local
        self._countdown = asyncio.create_task(self._close_preview_after(token, reveal=reveal))
        return True

    async def wait_revealed(self) -> Phase:
        """Wait until the current question's flow and countdown settle."""
        while True:
            pending = [t for t in (self._flow, self._countdown) if t is not None and not t.done()]
            if not pending:
                return self.phase
            await asyncio.wait(pending)

    async def aclose(self) -> None:
        tasks = [t for t in (self._flow, self._countdown, self._speech) if t is not None]
        self._stand_down()
        await asyncio.gather(*tasks, return_exceptions=True)
        await self.cache.aclose()

    # ── Question flow ─────────────────────────────────────────────────────

    async def _run_question(self, token: int, record: MemoryRecord) -> None:
        try:
            local = await self.cache.ensure(record.asset_url)
        except AssetFetchFailure as e:
            log.warning("Image download failed: %s", e)
            if self._is_current(token):
                # The quiz stays usable without the photo
                self.asset_error = ASSET_ERROR_MESSAGE
                self.phase = Phase.REVEALED
            return
        if not self._is_current(token):
            return

        self.preview_path = local
        self.phase = Phase.PREVIEWING
        self._speech = asyncio.create_task(self._speak(token, record, self.state.spoken_prompt))
        self._countdown = asyncio.create_task(self._close_preview_after(token, reveal=True))

    async def _close_preview_after(self, token: int, reveal: bool) -> None:
        await asyncio.sleep(self.preview_seconds)
        if not self._is_current(token):
            return
        self.preview_path = None
        if reveal:
            self.phase = Phase.REVEALED

    async def _speak(self, token: int, record: MemoryRecord, text: str) -> None:
        voice = record.voice_id or self.default_voice_id
        if not voice:
            log.info("No voice id for memory %s and no default voice; skipping speech", record.id)
            return
        try:
            audio = await self.synthesizer.synthesize(voice, text)
        except SynthesisUnconfigured as e:
            log.info("Speech skipped: %s", e)
            return
        except SpeechFailure as e:
            log.warning("TTS request failed: %s", e)
            return
        except Exception as e:
            log.warning("TTS error: %s", e)
            return

        if not self._is_current(token):
            log.debug("Discarding speech for an earlier question")
            return
        try:
            self.player.play(audio)
        except Exception as e:
            log.warning("Failed to play TTS audio: %s", e)

    # ── Presentation ──────────────────────────────────────────────────────

    def snapshot(self) -> dict:
        data = self.state.to_dict()
        data.update({
            "phase": self.phase.value,
            "previewing": self.preview_path is not None,
            "asset_error": self.asset_error,
            "question_token": self.question_token,
        })
        return data
