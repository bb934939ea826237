"""FastAPI shell that embeds one quiz session per process."""
from __future__ import annotations

import logging

logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import FileResponse, Response

from recall_trainer.audio import ClipPlayer
from recall_trainer.cache import ContentCache
from recall_trainer.config import Settings, load_settings, save_settings
from recall_trainer.errors import DataLoadFailure, EmptyDataset
from recall_trainer.orchestrator import Phase, QuestionOrchestrator
from recall_trainer.providers.base import MemorySource
from recall_trainer.session import QuizState, SessionStatus

app = FastAPI(title="Recall Trainer")

log = logging.getLogger("recall_trainer.app")

# Global state (initialized in startup)
_settings: Settings | None = None
_quiz: QuestionOrchestrator | None = None
_player: ClipPlayer | None = None


def get_settings() -> Settings:
    assert _settings is not None
    return _settings


def get_quiz() -> QuestionOrchestrator:
    assert _quiz is not None
    return _quiz


def get_player() -> ClipPlayer:
    assert _player is not None
    return _player


def _get_tts():
    from recall_trainer.providers.tts_elevenlabs import ElevenLabsSynthesizer
    s = get_settings()
    return ElevenLabsSynthesizer(api_key=s.elevenlabs_api_key, model_id=s.elevenlabs_model)


def _get_source() -> MemorySource:
    from recall_trainer.providers.source_supabase import SupabaseSource
    s = get_settings()
    return SupabaseSource(s.supabase_url, key=s.supabase_key, table=s.supabase_table)


def build_quiz(settings: Settings, player: ClipPlayer) -> QuestionOrchestrator:
    return QuestionOrchestrator(
        state=QuizState(session_size=settings.session_size),
        cache=ContentCache(settings.photo_cache_full_path, timeout=settings.download_timeout),
        synthesizer=_get_tts(),
        player=player,
        preview_seconds=settings.preview_seconds,
        default_voice_id=settings.default_voice_id,
    )


async def _ensure_loaded() -> None:
    quiz = get_quiz()
    if quiz.state.has_data:
        return
    try:
        n = await quiz.load(_get_source(), get_settings().fetch_limit)
    except EmptyDataset as e:
        raise HTTPException(404, str(e))
    except DataLoadFailure as e:
        raise HTTPException(503, str(e))
    log.info("Session ready with %d memories", n)


@app.on_event("startup")
async def startup():
    global _settings, _quiz, _player
    if _quiz is not None:
        return  # Already initialized (e.g. by tests)
    _settings = load_settings()
    _player = ClipPlayer()
    _quiz = build_quiz(_settings, _player)
    # Fetch memories before the patient presses Start; retried on start
    try:
        await _ensure_loaded()
    except HTTPException as e:
        log.warning("Memory fetch on launch failed: %s", e.detail)


@app.on_event("shutdown")
async def shutdown():
    if _quiz is not None:
        await _quiz.aclose()


def _snapshot() -> dict:
    data = get_quiz().snapshot()
    data["audio_clip"] = get_player().clip_id
    return data


# ── API: Session ──────────────────────────────────────────────────────────

@app.get("/api/session")
async def api_session(wait: bool = False):
    """Current quiz state. ``wait=true`` blocks until the preview closes."""
    if wait:
        await get_quiz().wait_revealed()
    return _snapshot()


@app.post("/api/session/start")
async def api_session_start():
    await _ensure_loaded()
    quiz = get_quiz()
    if quiz.state.status is SessionStatus.COMPLETE:
        quiz.restart()
    else:
        quiz.enter_question()
    return _snapshot()


@app.post("/api/session/answer")
async def api_session_answer(request: Request):
    body = await request.json()
    option = body.get("option")
    if not isinstance(option, str):
        raise HTTPException(400, "No option provided")
    quiz = get_quiz()
    if quiz.state.status is not SessionStatus.ACTIVE:
        raise HTTPException(409, "No active question")
    if quiz.phase is not Phase.REVEALED:
        raise HTTPException(409, "Question not shown yet")
    quiz.select(option)
    return _snapshot()


@app.post("/api/session/next")
async def api_session_next():
    quiz = get_quiz()
    if quiz.state.status is SessionStatus.NOT_LOADED:
        raise HTTPException(409, "No session loaded")
    quiz.advance()
    return _snapshot()


@app.post("/api/session/restart")
async def api_session_restart(request: Request):
    body = await request.json() if await request.body() else {}
    quiz = get_quiz()
    if quiz.state.status is SessionStatus.NOT_LOADED:
        raise HTTPException(409, "No session loaded")
    quiz.restart(reshuffle=bool(body.get("reshuffle", False)))
    return _snapshot()


@app.post("/api/session/replay")
async def api_session_replay():
    replaying = await get_quiz().replay_preview()
    data = _snapshot()
    data["replaying"] = replaying
    return data


# ── API: Media ────────────────────────────────────────────────────────────

@app.get("/api/photo")
async def api_photo():
    path = get_quiz().preview_path
    if path is None or not path.exists():
        raise HTTPException(404, "No photo on screen")
    return FileResponse(path)


@app.get("/api/audio/current.mp3")
async def api_audio():
    clip = get_player().clip
    if clip is None:
        raise HTTPException(404, "Audio not found")
    return Response(content=clip, media_type="audio/mpeg")


# ── API: Settings ─────────────────────────────────────────────────────────

@app.get("/api/settings")
async def api_get_settings():
    return get_settings().to_dict()


@app.put("/api/settings")
async def api_update_settings(request: Request):
    body = await request.json()
    s = get_settings()
    known = {f.name for f in Settings.__dataclass_fields__.values()}
    for k, v in body.items():
        if k in known:
            setattr(s, k, v)
    save_settings(s)
    # Only these apply to the running session; the rest take effect on restart
    quiz = get_quiz()
    quiz.preview_seconds = s.preview_seconds
    quiz.default_voice_id = s.default_voice_id or None
    return s.to_dict()
