"""Failure types raised by the quiz core.

None of these is fatal: the orchestrator and the web shell turn each one
into a degraded question (no preview, no speech) or an error response.
"""
from __future__ import annotations


class RecallError(Exception):
    pass


# ── Data load ─────────────────────────────────────────────────────────────

class DataLoadFailure(RecallError):
    pass


class EmptyDataset(DataLoadFailure):
    def __init__(self, message: str = "No memories found yet."):
        super().__init__(message)


# ── Assets ────────────────────────────────────────────────────────────────

class AssetFetchFailure(RecallError):
    def __init__(self, identity: str, message: str):
        super().__init__(f"{message}: {identity}")
        self.identity = identity


class InvalidRemoteIdentity(AssetFetchFailure):
    def __init__(self, identity: str):
        super().__init__(identity, "Not a fetchable URL")


class DownloadFailed(AssetFetchFailure):
    pass


# ── Speech ────────────────────────────────────────────────────────────────

class SpeechFailure(RecallError):
    pass


class SynthesisUnconfigured(SpeechFailure):
    pass


class SynthesisFailed(SpeechFailure):
    def __init__(self, status_code: int | None, detail: str = ""):
        msg = f"TTS failed with HTTP {status_code}" if status_code is not None else "TTS request failed"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)
        self.status_code = status_code
