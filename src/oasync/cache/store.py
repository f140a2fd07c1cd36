"""Disk store for the raw text of previously parsed specs.

Uses :mod:`diskcache` to keep the last successfully parsed document of each
source inside the project directory, so a validated cache hit can be served
by re-parsing local text instead of fetching the source again.

Keys are SHA-256 hashes of the source locator. Each entry carries the
``spec_hash`` it was stored under; :meth:`SpecContentStore.get` returns
nothing when the caller expects a different hash.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Optional

import diskcache

CONTENT_DIRNAME = ".openapi-sync.content"


class SpecContentStore:
    """Disk-backed map from spec source to its last parsed text.

    Args:
        project_dir: Project directory; entries live in
            ``<project_dir>/.openapi-sync.content/``.

    Example::

        with SpecContentStore("./my-project") as store:
            store.put("api.yaml", spec.spec_hash, text)
            text = store.get("api.yaml", spec.spec_hash)
    """

    def __init__(self, project_dir: str | Path) -> None:
        self._directory = Path(project_dir) / CONTENT_DIRNAME
        self._cache = diskcache.Cache(str(self._directory))

    @property
    def directory(self) -> Path:
        return self._directory

    def get(self, source: str, spec_hash: str) -> Optional[str]:
        """Return the stored text for *source* if it was stored under *spec_hash*."""
        entry = self._cache.get(self._make_key(source))
        if not isinstance(entry, dict) or entry.get("spec_hash") != spec_hash:
            return None
        return entry.get("content")

    def put(self, source: str, spec_hash: str, content: str) -> None:
        self._cache.set(
            self._make_key(source), {"spec_hash": spec_hash, "content": content}
        )

    def clear(self) -> None:
        """Remove all entries from the store."""
        self._cache.clear()

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        self._cache.close()

    def __enter__(self) -> SpecContentStore:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @staticmethod
    def _make_key(source: str) -> str:
        return hashlib.sha256(source.encode()).hexdigest()
