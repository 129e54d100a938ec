"""Cache for rendered images plus a scratch area for one-shot files.

Cached files live at ``<cache_dir>/<namespace>-<key>`` and are written through
a temporary file in the same directory followed by ``os.replace``, so a reader
either sees a complete file or nothing. Scratch files get a fresh UUID each
call and are never looked up again; something outside the bot cleans them up.
"""
from __future__ import annotations

import asyncio
import hashlib
import inspect
import os
import re
import tempfile
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from .config import logger
from .errors import ProductionFailedError, StorageUnavailableError

_SAFE_NAME = re.compile(r"[A-Za-z0-9._-]+")

Producer = Callable[[], Any]


def _safe_part(value: str) -> str:
    if _SAFE_NAME.fullmatch(value) and value not in (".", ".."):
        return value
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


class AssetCache:
    def __init__(self, cache_dir: str | os.PathLike, temp_dir: str | os.PathLike):
        self.cache_dir = Path(cache_dir)
        self.temp_dir = Path(temp_dir)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            self.temp_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailableError(f"Asset directories unavailable: {e}") from e
        self._locks: Dict[Path, asyncio.Lock] = {}
        self._waiters: Dict[Path, int] = {}

    def cache_path(self, namespace: str, key: str) -> Path:
        return self.cache_dir / f"{_safe_part(namespace)}-{_safe_part(key)}"

    def get_cached(self, namespace: str, key: str) -> Optional[Path]:
        path = self.cache_path(namespace, key)
        return path if path.is_file() else None

    async def get_or_create(self, namespace: str, key: str, producer: Producer) -> Path:
        path = self.cache_path(namespace, key)
        if path.is_file():
            logger.debug(f"Cache hit {path.name}")
            return path

        lock = self._locks.setdefault(path, asyncio.Lock())
        self._waiters[path] = self._waiters.get(path, 0) + 1
        try:
            async with lock:
                # Another caller may have finished while we waited
                if path.is_file():
                    logger.debug(f"Cache hit {path.name} after wait")
                    return path
                data = await self._produce(namespace, key, producer)
                self._write_atomic(path, data)
                logger.info(f"Created cache file {path.name}")
                return path
        finally:
            self._waiters[path] -= 1
            if not self._waiters[path]:
                del self._waiters[path]
                del self._locks[path]

    async def read(self, namespace: str, key: str, producer: Producer) -> bytes:
        path = await self.get_or_create(namespace, key, producer)
        return path.read_bytes()

    def create_scratch(self, namespace: str, extension: str) -> Path:
        ext = extension.lstrip(".")
        return self.temp_dir / f"{_safe_part(namespace)}-{uuid.uuid4()}.{_safe_part(ext)}"

    def write_scratch(self, namespace: str, extension: str, data: bytes) -> Path:
        path = self.create_scratch(namespace, extension)
        try:
            path.write_bytes(data)
        except OSError as e:
            raise StorageUnavailableError(f"Could not write {path}: {e}") from e
        logger.debug(f"Wrote scratch file {path.name}")
        return path

    async def _produce(self, namespace: str, key: str, producer: Producer) -> bytes:
        try:
            data = producer()
            if inspect.isawaitable(data):
                data = await data
        except Exception as e:
            logger.error(f"Producer for {namespace}/{key} failed: {e}")
            raise ProductionFailedError(namespace, key, e) from e
        if not isinstance(data, (bytes, bytearray)):
            err = TypeError(f"producer returned {type(data).__name__}, expected bytes")
            raise ProductionFailedError(namespace, key, err)
        return bytes(data)

    def _write_atomic(self, path: Path, data: bytes) -> None:
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=".tmp-", dir=self.cache_dir)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageUnavailableError(f"Could not write {path}: {e}") from e
