"""Tiny helpers shared across test modules."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any


def bearer(token: str) -> dict[str, str]:
    """Return an ``Authorization`` header carrying ``token``."""
    return {"Authorization": f"Bearer {token}"}


def assert_problem(resp, status: int, code: str) -> dict[str, Any]:
    """Assert ``resp`` is an error response with ``status`` and ``code``; return its body."""
    assert resp.status_code == status, resp.get_data(as_text=True)
    body = resp.get_json()
    assert body["code"] == code
    return body


@contextmanager
def not_raises(exception: type[BaseException]):
    """Fail the test if ``exception`` escapes the block."""
    try:
        yield
    except exception as exc:  # pragma: no cover
        raise AssertionError(f"Did raise {exception}: {exc}") from exc
