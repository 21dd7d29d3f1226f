"""Decision value returned by every engine check."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Decision:
    """Outcome of a rate or capacity check.

    Carries no reference to engine state. ``retry_after_ms`` and
    ``reason`` are only meaningful when ``allowed`` is ``False``.
    """

    allowed: bool
    remaining: int
    reset_in_ms: int
    retry_after_ms: int | None = None
    reason: str | None = None

    @classmethod
    def allow(cls, remaining: int, reset_in_ms: int = 0) -> Decision:
        return cls(allowed=True, remaining=remaining, reset_in_ms=reset_in_ms)

    @classmethod
    def deny(
        cls,
        reason: str,
        reset_in_ms: int = 0,
        retry_after_ms: int | None = None,
    ) -> Decision:
        return cls(
            allowed=False,
            remaining=0,
            reset_in_ms=reset_in_ms,
            retry_after_ms=retry_after_ms,
            reason=reason,
        )

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the camelCase shape exposed to clients.

        Example::

            {"allowed": False, "remaining": 0, "resetIn": 42000,
             "retryAfter": 42000, "reason": "Rate limit exceeded. ..."}
        """
        payload: dict[str, Any] = {
            "allowed": self.allowed,
            "remaining": self.remaining,
            "resetIn": self.reset_in_ms,
        }
        if not self.allowed:
            if self.retry_after_ms is not None:
                payload["retryAfter"] = self.retry_after_ms
            if self.reason is not None:
                payload["reason"] = self.reason
        return payload
