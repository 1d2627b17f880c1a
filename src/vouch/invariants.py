"""Invariant markers."""

from __future__ import annotations

from typing import NoReturn, TypeVar

from vouch.exceptions import MarkerPayload, NeverThrown

T = TypeVar("T")


def never(reason: str = "", **env: object) -> NoReturn:
    """Mark a code path as intentionally unreachable.

    The optional env payload is attached to the raised exception for
    diagnostics only.
    """
    raise NeverThrown(reason, marker_payload=MarkerPayload(reason=reason, env=dict(env)))


def require_not_none(value: T | None, *, reason: str = "", **env: object) -> T:
    if value is None:
        never(reason or "required value is None", **env)
    return value
