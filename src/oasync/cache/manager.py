"""Per-project cache record and freshness checks.

One :class:`~oasync.models.OasCache` record lives in each project directory
as ``.openapi-sync.cache.json``. It records when and from where a spec was
last fetched, the document hash, condensed metadata, and the freshness
signals needed to decide whether the parser has to run again:

* a TTL measured from ``last_fetch``;
* ``ETag`` / ``Last-Modified`` for remote sources, checked with a ``HEAD``
  probe;
* the file modification time for local sources.

Writes are atomic (temp file in the same directory, then rename). There is
no cross-process locking: concurrent writers race and the last one wins.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import httpx
from pydantic import ValidationError

from oasync.config import atomic_write
from oasync.exceptions import CacheCorruptedError, CacheNotFoundError, CacheWriteError
from oasync.models import (
    CachedMeta,
    HttpCacheInfo,
    LocalCacheInfo,
    OasCache,
    ParsedSpec,
    Settings,
)
from oasync.parser.loader import is_remote

logger = logging.getLogger(__name__)

CACHE_FILENAME = ".openapi-sync.cache.json"
CACHE_RECORD_VERSION = "1.0.0"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; a trailing ``Z`` and naive values mean UTC."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def local_mtime(path: str | Path) -> str:
    """Return the modification time of *path* as an ISO-8601 UTC string.

    Raises:
        OSError: If the file cannot be stat'ed.
    """
    stat = os.stat(path)
    return datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat()


class CacheManager:
    """Load, save, create and validate the cache record of one project.

    Args:
        project_dir: Directory holding the cache record.
        settings: Supplies the default TTL and the probe timeout.

    Example::

        manager = CacheManager("./my-project")
        try:
            cache = manager.load()
        except CacheNotFoundError:
            cache = None
        if cache is not None and manager.check_local_validity("api.yaml", cache):
            ...  # reuse cached results
    """

    def __init__(self, project_dir: str | Path, settings: Optional[Settings] = None) -> None:
        self.project_dir = Path(project_dir)
        self.settings = settings or Settings()

    @property
    def cache_path(self) -> Path:
        return self.project_dir / CACHE_FILENAME

    # --- Persistence ---

    def exists(self) -> bool:
        return self.cache_path.is_file()

    def load(self) -> OasCache:
        """Read the cache record.

        Raises:
            CacheNotFoundError: If no record exists.
            CacheCorruptedError: If the record cannot be read or decoded.
        """
        path = self.cache_path
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise CacheNotFoundError(str(path)) from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise CacheCorruptedError(f"cannot read {path}: {exc}") from exc

        try:
            return OasCache.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise CacheCorruptedError(str(exc)) from exc

    def save(self, cache: OasCache) -> Path:
        """Write the cache record atomically, creating the project directory.

        Raises:
            CacheWriteError: If the directory or file cannot be written.
        """
        path = self.cache_path
        data = json.dumps(cache.model_dump(mode="json"), indent=2) + "\n"
        try:
            atomic_write(path, data)
        except OSError as exc:
            raise CacheWriteError(f"{path}: {exc}") from exc
        logger.debug("Saved cache record to %s", path)
        return path

    def clear(self) -> bool:
        """Delete the cache record; return whether one existed."""
        try:
            self.cache_path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise CacheWriteError(f"{self.cache_path}: {exc}") from exc
        return True

    # --- Construction ---

    def create(
        self,
        spec: ParsedSpec,
        source: str,
        ttl_seconds: Optional[int] = None,
        http_cache: Optional[HttpCacheInfo] = None,
        now: Optional[datetime] = None,
    ) -> OasCache:
        """Build a fresh cache record for a spec that was just parsed.

        Remote sources keep the captured ``ETag``/``Last-Modified`` headers;
        local sources record the file's current modification time.
        """
        local = LocalCacheInfo()
        headers = HttpCacheInfo()
        if is_remote(source):
            headers = http_cache or HttpCacheInfo()
        else:
            try:
                local = LocalCacheInfo(mtime=local_mtime(source))
            except OSError as exc:
                logger.warning("Cannot stat %s for cache record: %s", source, exc)

        return OasCache(
            version=CACHE_RECORD_VERSION,
            last_fetch=(now or _utcnow()).isoformat(),
            spec_hash=spec.spec_hash,
            source=source,
            ttl_seconds=self.settings.ttl_seconds if ttl_seconds is None else ttl_seconds,
            http_cache=headers,
            local_cache=local,
            meta=CachedMeta(
                title=spec.metadata.title,
                version=spec.metadata.version,
                openapi_version=spec.metadata.openapi_version.value,
                endpoint_count=spec.metadata.endpoint_count,
                schema_count=spec.metadata.schema_count,
            ),
        )

    # --- Validity ---

    def is_expired(self, cache: OasCache, now: Optional[datetime] = None) -> bool:
        """True when more than ``ttl_seconds`` have passed since ``last_fetch``.

        An unparsable timestamp counts as expired.
        """
        try:
            last_fetch = _parse_timestamp(cache.last_fetch)
        except ValueError:
            logger.debug("Unparsable last_fetch %r; treating cache as expired", cache.last_fetch)
            return True
        elapsed = ((now or _utcnow()) - last_fetch).total_seconds()
        return elapsed > cache.ttl_seconds

    def check_remote_validity(
        self,
        url: str,
        cache: OasCache,
        now: Optional[datetime] = None,
    ) -> bool:
        """Decide whether a cached remote spec can be reused.

        An expired cache is invalid without touching the network. Otherwise
        a ``HEAD`` probe compares ``ETag`` (when both sides have one), else
        ``Last-Modified``. Probe failures and missing headers keep the cache.
        """
        if self.is_expired(cache, now=now):
            return False

        try:
            response = httpx.head(url, timeout=self.settings.probe_timeout, follow_redirects=True)
        except httpx.HTTPError as exc:
            logger.warning("Freshness probe for %s failed (%s); trusting cache", url, exc)
            return True

        etag = response.headers.get("etag")
        if etag is not None and cache.http_cache.etag is not None:
            return etag == cache.http_cache.etag

        last_modified = response.headers.get("last-modified")
        if last_modified is not None and cache.http_cache.last_modified is not None:
            return last_modified == cache.http_cache.last_modified

        return True

    def check_local_validity(
        self,
        path: str | Path,
        cache: OasCache,
        now: Optional[datetime] = None,
    ) -> bool:
        """Decide whether a cached local spec can be reused (TTL and unchanged mtime)."""
        if self.is_expired(cache, now=now):
            return False
        try:
            current = local_mtime(path)
        except OSError:
            return False
        return cache.local_cache.mtime is not None and current == cache.local_cache.mtime

    def is_valid(self, cache: OasCache, now: Optional[datetime] = None) -> bool:
        """Dispatch to the remote or local check based on ``cache.source``."""
        if is_remote(cache.source):
            return self.check_remote_validity(cache.source, cache, now=now)
        return self.check_local_validity(cache.source, cache, now=now)
