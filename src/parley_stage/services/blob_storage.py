"""Storage for uploaded profile photos."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path, PurePosixPath

from parley_stage.core.settings import settings

logger = logging.getLogger(__name__)


class LocalBlobStorage:
    """Writes blobs under a local directory served as static files."""

    def __init__(self, root: str | Path | None = None, base_url: str | None = None) -> None:
        self.root = Path(root or settings.media_root).resolve()
        self.base_url = (base_url or settings.media_base_url).rstrip("/")

    def _target(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts:
            raise ValueError(f"Refusing to store blob outside the media root: {path!r}")
        return self.root.joinpath(*relative.parts)

    def _write(self, target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    async def put(self, path: str, data: bytes) -> str:
        """Store `data` at `path` and return its public URL."""
        target = self._target(path)
        await asyncio.to_thread(self._write, target, data)
        logger.info("Stored blob %s (%d bytes)", path, len(data))
        return f"{self.base_url}/{PurePosixPath(path)}"
