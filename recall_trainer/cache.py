"""Local file cache for remote photo assets."""
from __future__ import annotations

import asyncio
import logging
import os
import tempfile
import uuid
from pathlib import Path, PurePosixPath
from urllib.parse import unquote, urlsplit

import httpx

from recall_trainer.errors import DownloadFailed, InvalidRemoteIdentity

log = logging.getLogger("recall_trainer.cache")

FETCHABLE_SCHEMES = {"http", "https"}


def _exists_and_non_empty(path: Path) -> bool:
    # Size check only: guards against a truncated earlier write, not tampering.
    try:
        return path.stat().st_size > 0
    except OSError:
        return False


class ContentCache:
    """Download-or-reuse cache keyed by remote URL.

    Each identity maps to a fixed file under *cache_dir*, named after the
    URL's last path segment. Concurrent ``ensure()`` calls for the same
    identity share one download.
    """

    def __init__(self, cache_dir: Path, client: httpx.AsyncClient | None = None, timeout: float = 60.0):
        self.cache_dir = Path(cache_dir)
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout
        self._entries: dict[str, Path] = {}
        self._generated_names: dict[str, str] = {}
        self._in_flight: dict[str, asyncio.Task[Path]] = {}
        self.fetch_count = 0

    def local_path(self, identity: str) -> Path:
        parts = urlsplit(identity)
        if parts.scheme not in FETCHABLE_SCHEMES or not parts.netloc:
            raise InvalidRemoteIdentity(identity)
        name = unquote(PurePosixPath(parts.path).name)
        if not name:
            name = self._generated_names.setdefault(identity, f"{uuid.uuid4().hex}.heic")
        return self.cache_dir / name

    def cached(self, identity: str) -> Path | None:
        return self._entries.get(identity)

    def forget(self, identity: str) -> None:
        self._entries.pop(identity, None)

    async def ensure(self, identity: str) -> Path:
        dest = self.local_path(identity)

        known = self._entries.get(identity)
        if known is not None and _exists_and_non_empty(known):
            return known

        task = self._in_flight.get(identity)
        if task is None or task.done():
            task = asyncio.create_task(self._resolve(identity, dest))
            self._in_flight[identity] = task
            task.add_done_callback(lambda t: self._drop_in_flight(identity, t))
        # Shield so one cancelled waiter does not abort the shared download.
        return await asyncio.shield(task)

    def _drop_in_flight(self, identity: str, task: asyncio.Task) -> None:
        if self._in_flight.get(identity) is task:
            del self._in_flight[identity]
        # Waiters may all have been cancelled; mark the error as seen
        if not task.cancelled() and task.exception() is not None:
            log.debug("Fetch of %s failed: %s", identity, task.exception())

    async def _resolve(self, identity: str, dest: Path) -> Path:
        if _exists_and_non_empty(dest):
            log.debug("Reusing %s", dest.name)
        else:
            await self._download(identity, dest)
        self._entries[identity] = dest
        return dest

    async def _download(self, identity: str, dest: Path) -> None:
        self.fetch_count += 1
        log.info("Downloading %s", identity)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DownloadFailed(identity, f"Cache directory unavailable ({e})") from e

        fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, prefix=".part-")
        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                client = self._get_client()
                async with client.stream("GET", identity) as resp:
                    if not resp.is_success:
                        raise DownloadFailed(identity, f"HTTP {resp.status_code}")
                    async for chunk in resp.aiter_bytes():
                        f.write(chunk)
            os.replace(tmp, dest)
        except (httpx.HTTPError, OSError) as e:
            tmp.unlink(missing_ok=True)
            raise DownloadFailed(identity, str(e) or type(e).__name__) from e
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
        return self._client

    async def aclose(self) -> None:
        pending = list(self._in_flight.values())
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
