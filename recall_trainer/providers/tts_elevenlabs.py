from __future__ import annotations

import asyncio
import logging

import httpx
from elevenlabs.core.api_error import ApiError

from recall_trainer.errors import SynthesisFailed, SynthesisUnconfigured
from recall_trainer.providers.base import SpeechSynthesizer

log = logging.getLogger("recall_trainer.tts")


class ElevenLabsSynthesizer(SpeechSynthesizer):
    def __init__(
        self,
        api_key: str = "",
        model_id: str = "eleven_multilingual_v2",
        output_format: str = "mp3_44100_128",
        client=None,
    ):
        self.api_key = api_key
        self.model_id = model_id
        self.output_format = output_format
        self._client = client

    @property
    def client(self):
        if self._client is None:
            from elevenlabs import ElevenLabs
            self._client = ElevenLabs(api_key=self.api_key)
        return self._client

    async def synthesize(self, voice_id: str, text: str) -> bytes:
        if not self.api_key:
            raise SynthesisUnconfigured("Missing ElevenLabs API key")
        if not voice_id:
            raise SynthesisUnconfigured("No voice id given")

        def _generate() -> bytes:
            audio = self.client.text_to_speech.convert(
                voice_id=voice_id,
                text=text,
                model_id=self.model_id,
                output_format=self.output_format,
            )
            # audio is a generator of bytes; HTTP errors surface while iterating
            return b"".join(audio)

        try:
            data = await asyncio.get_running_loop().run_in_executor(None, _generate)
        except ApiError as e:
            raise SynthesisFailed(e.status_code) from e
        except httpx.HTTPError as e:
            raise SynthesisFailed(None, str(e)) from e
        if not data:
            raise SynthesisFailed(None, "empty audio payload")
        log.info("Synthesized %d bytes with voice %s", len(data), voice_id)
        return data

    def name(self) -> str:
        return f"elevenlabs/{self.model_id}"
