"""
CacheStore: versioned, TTL-bound persistent store for the assembled collection.

One JSON file per store: <cache_dir>/<namespace>/<key>.json. Every failure is
soft: a missing or unreadable file reads as absent, a failed write is logged
and ignored. No locking; a single loader per process is assumed.
"""
from __future__ import annotations

import contextlib
import dataclasses
import json
import logging
import os
import time
from pathlib import Path
from typing import Callable, Iterable

from .const import CACHE_KEY, CACHE_NAMESPACE, CACHE_TTL, CACHE_VERSION
from .errors import CacheCorrupt, CacheWriteFailed
from .models import CacheEnvelope, Record

_LOGGER = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class CacheInfo:
    """Read-only description of what is currently persisted."""

    exists: bool = False
    is_valid: bool = False
    age: float | None = None            # seconds since capture
    total_records: int = 0
    schema_version: str | None = None


class CacheStore:
    """File-backed get/set/invalidate over a single CacheEnvelope."""

    def __init__(
        self,
        cache_dir: Path | str,
        namespace: str = CACHE_NAMESPACE,
        key: str = CACHE_KEY,
        version: str = CACHE_VERSION,
        ttl: float = CACHE_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.path = Path(cache_dir) / namespace / f"{key}.json"
        self.version = version
        self.ttl = ttl
        self._clock = clock

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def read(self) -> CacheEnvelope | None:
        """
        Return the persisted envelope, or None when there is none.

        Validity (version, TTL) is NOT checked here, see is_valid(). An
        unparsable file is deleted.
        """
        try:
            data = self.path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            _LOGGER.warning("Could not read cache file %s: %s", self.path, exc)
            return None

        try:
            return self._decode(data)
        except CacheCorrupt as exc:
            _LOGGER.debug("Discarding corrupt cache %s: %s", self.path, exc)
            self.invalidate()
            return None

    def write(self, records: Iterable[Record]) -> bool:
        """Persist records with the current time and schema version. Returns success."""
        envelope = CacheEnvelope(
            records=tuple(records),
            captured_at=self._clock(),
            schema_version=self.version,
        )
        try:
            self._write_atomic(self._encode(envelope))
        except CacheWriteFailed as exc:
            _LOGGER.warning("Cache write failed, continuing without cache: %s", exc)
            return False
        _LOGGER.debug("Cached %s records to %s", envelope.total_records, self.path)
        return True

    def invalidate(self) -> None:
        """Delete the persisted envelope. Missing files are ignored."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            _LOGGER.warning("Could not delete cache file %s: %s", self.path, exc)

    def is_valid(self, envelope: CacheEnvelope | None) -> bool:
        if envelope is None or envelope.schema_version != self.version:
            return False
        return self._clock() - envelope.captured_at < self.ttl

    def describe(self) -> CacheInfo:
        """Inspect the persisted envelope without deleting an outdated one."""
        envelope = self.read()
        if envelope is None:
            return CacheInfo()
        return CacheInfo(
            exists=True,
            is_valid=self.is_valid(envelope),
            age=self._clock() - envelope.captured_at,
            total_records=envelope.total_records,
            schema_version=envelope.schema_version,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _decode(data: bytes) -> CacheEnvelope:
        try:
            return CacheEnvelope.from_json(json.loads(data.decode("utf-8")))
        except ValueError as exc:  # UnicodeDecodeError and JSONDecodeError are ValueErrors
            raise CacheCorrupt(str(exc)) from exc

    @staticmethod
    def _encode(envelope: CacheEnvelope) -> str:
        try:
            return json.dumps(envelope.to_json(), ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise CacheWriteFailed(f"serialization failed: {exc}") from exc

    def _write_atomic(self, payload: str) -> None:
        tmp_path = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                tmp_path.unlink(missing_ok=True)
            raise CacheWriteFailed(f"{self.path}: {exc}") from exc
