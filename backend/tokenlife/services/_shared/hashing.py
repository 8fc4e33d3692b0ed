"""Lookup-key transform for raw credentials."""

from __future__ import annotations

import hashlib


def hash_token(raw: str) -> str:
    """Return the SHA-256 digest of ``raw`` as 64 lowercase hex characters.

    Deterministic and unsalted: the digest is a search key, not a password
    hash. Raw credentials are never persisted or logged; only this value is.

    :param raw: Raw credential as presented by the client.
    :type raw: str
    :returns: Hex digest.
    :rtype: str
    """
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()
