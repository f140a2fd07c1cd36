"""Content digests for documents, schemas and endpoints.

A digest is the first 16 hex characters of the SHA-256 of the input. For
structured values the input is the compact JSON serialisation with keys in
document order, so two documents that differ only in key order produce
different digests.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

HASH_LENGTH = 16


def compute_hash(content: str) -> str:
    """Return the truncated SHA-256 hex digest of *content*."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:HASH_LENGTH]


def compute_json_hash(value: Any) -> str:
    """Return the digest of *value* serialised as compact JSON (no key sorting)."""
    text = json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
    return compute_hash(text)
