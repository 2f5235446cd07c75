"""
Cache key fingerprints.

Two derivations are provided:

- ``fingerprint`` turns an unordered collection of strings (CSV headers)
  into an order- and case-independent key.
- ``hash_payload`` turns an arbitrary JSON-like payload into a stable
  content hash.

Both are pure and do not depend on process state, so keys survive restarts.
"""

from __future__ import annotations

import hashlib
import json
from typing import Iterable

FINGERPRINT_SEPARATOR = "|"


def normalize_item(item: str) -> str:
    """Trim surrounding whitespace and case-fold a single item."""
    return item.strip().lower()


def fingerprint(items: Iterable[str]) -> str:
    """
    Return the order-independent fingerprint of ``items``.

    An empty input yields ``""``, which callers must treat as "no signal"
    rather than a usable key.
    """
    return FINGERPRINT_SEPARATOR.join(sorted(normalize_item(str(item)) for item in items))


def hash_payload(payload: object) -> str:
    """Return a SHA-256 hex digest of ``payload`` serialized canonically."""
    canonical = json.dumps(
        payload,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
        default=str,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
