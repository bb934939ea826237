"""CLI entry point for recall-trainer.

Usage:
  python -m recall_trainer serve [--host HOST] [--port PORT]
  python -m recall_trainer check
"""
from __future__ import annotations

import asyncio
import sys


def main():
    args = sys.argv[1:]
    command = args[0] if args else "serve"

    if command == "serve":
        _serve(args[1:])
    elif command == "check":
        _check()
    else:
        print(f"Unknown command: {command}")
        print("Commands: serve, check")
        sys.exit(1)


def _parse_flag(args: list[str], name: str, default: str) -> str:
    for i, a in enumerate(args):
        if a == name and i + 1 < len(args):
            return args[i + 1]
    return default


def _serve(args: list[str]):
    import uvicorn

    port = int(_parse_flag(args, "--port", "8766"))
    host = _parse_flag(args, "--host", "127.0.0.1")
    print(f"Starting Recall Trainer on http://{host}:{port}")
    print("Press Ctrl+C to stop\n")
    uvicorn.run(
        "recall_trainer.app:app",
        host=host,
        port=port,
        reload=False,
        timeout_graceful_shutdown=5,
    )


def _check():
    """Fetch memories once and report what a session would draw from."""
    from recall_trainer.config import load_settings
    from recall_trainer.errors import DataLoadFailure
    from recall_trainer.providers.source_supabase import SupabaseSource

    settings = load_settings()
    source = SupabaseSource(settings.supabase_url, key=settings.supabase_key, table=settings.supabase_table)
    try:
        records = asyncio.run(source.fetch_records(settings.fetch_limit))
    except DataLoadFailure as e:
        print(f"Fetch failed: {e}")
        sys.exit(1)

    voiced = sum(1 for r in records if r.voice_id)
    print("Recall Trainer Check")
    print("=" * 40)
    print(f"Source:             {source.name()}")
    print(f"Usable memories:    {len(records)}")
    print(f"With a voice id:    {voiced}")
    print(f"Session size:       {min(settings.session_size, len(records))}")
    print(f"Photo cache:        {settings.photo_cache_full_path}")
    print(f"Speech configured:  {'yes' if settings.elevenlabs_api_key else 'no'}")


if __name__ == "__main__":
    main()
