"""Pending-appointment store: confirmation code -> calendar event id.

The whole mapping lives in one JSON document that is read on every access and
rewritten on every change. Mutations go through an asyncio lock so that
concurrent requests in this process cannot interleave their read-modify-write
cycles; other processes sharing the file are not coordinated.
"""
from __future__ import annotations
import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


class PendingStore:
    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def read(self) -> dict[str, str]:
        """Return the stored mapping; absent, blank or corrupt files read as empty."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug(f"{self.path} does not exist yet")
            return {}
        except OSError as e:
            logger.error(f"Could not read {self.path}: {e}")
            return {}

        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.error(f"Corrupt pending store {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.error(f"Pending store {self.path} is not a JSON object, ignoring it")
            return {}
        return {str(code): str(event_id) for code, event_id in data.items()}

    def write(self, data: dict[str, str]) -> None:
        """Replace the stored mapping.

        The document is written to a temporary file and moved over the old one,
        so a failed write leaves the previous contents untouched.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError):
            logger.exception(f"Writing {self.path} failed; previous contents kept")
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.info(f"Pending store saved ({len(data)} pending)")

    # the async helpers run file I/O in a worker thread to keep the event loop free

    async def pending(self) -> dict[str, str]:
        async with self._lock:
            return await asyncio.to_thread(self.read)

    async def get(self, code: str) -> str | None:
        return (await self.pending()).get(code)

    async def add(self, code: str, event_id: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self.read)
            data[code] = event_id
            await asyncio.to_thread(self.write, data)

    async def pop(self, code: str) -> str | None:
        """Remove ``code`` and return its event id (None if it was not pending)."""
        async with self._lock:
            data = await asyncio.to_thread(self.read)
            event_id = data.pop(code, None)
            if event_id is not None:
                await asyncio.to_thread(self.write, data)
            return event_id
