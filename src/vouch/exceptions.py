"""Exception types raised by vouch."""

from __future__ import annotations

from dataclasses import dataclass, field


class VouchError(Exception):
    """Base class for recoverable vouch errors."""


class ConfigError(VouchError):
    """Raised when configuration cannot be loaded or is invalid."""


@dataclass(frozen=True)
class MarkerPayload:
    reason: str
    env: dict[str, object] = field(default_factory=dict)


class NeverRaise(RuntimeError):
    """Sentinel exception that should be statically unreachable.

    Raising this exception signals that a code path assumed impossible (for
    example an unknown node kind reaching the traversal dispatch) was taken.
    """

    def __init__(self, message: str, *, marker_payload: MarkerPayload | None = None):
        super().__init__(message)
        self.marker_payload = marker_payload or MarkerPayload(reason=message)

    @property
    def env(self) -> dict[str, object]:
        return dict(self.marker_payload.env)


class NeverThrown(NeverRaise):
    """Alias for NeverRaise used by the explicit never() marker."""
