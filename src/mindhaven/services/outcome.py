"""Structured results returned by membership and content operations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from mindhaven.core.errors import (
    AuthenticationRequiredError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
)


class OutcomeReason(str, Enum):
    """Why an operation succeeded or was refused."""

    OK = "ok"
    ALREADY_MEMBER = "already_member"
    UNAUTHENTICATED = "unauthenticated"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    NOT_MEMBER = "not_member"
    LAST_ADMIN = "last_admin"


_FAILURE_ERRORS: dict[OutcomeReason, type[Exception]] = {
    OutcomeReason.UNAUTHENTICATED: AuthenticationRequiredError,
    OutcomeReason.UNAUTHORIZED: AuthorizationError,
    OutcomeReason.NOT_FOUND: NotFoundError,
    OutcomeReason.NOT_MEMBER: NotFoundError,
    OutcomeReason.LAST_ADMIN: ConflictError,
}


@dataclass(frozen=True)
class Outcome:
    """Success flag plus reason; truthy exactly when the operation succeeded.

    Expected refusals (missing rights, missing records, last-admin guard) are
    normal outcomes rather than exceptions.
    """

    ok: bool
    reason: OutcomeReason = OutcomeReason.OK
    value: Any = None
    detail: str | None = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, value: Any = None, reason: OutcomeReason = OutcomeReason.OK) -> Outcome:
        return cls(ok=True, reason=reason, value=value)

    @classmethod
    def failure(cls, reason: OutcomeReason, detail: str | None = None) -> Outcome:
        return cls(ok=False, reason=reason, detail=detail)

    def raise_for_failure(self) -> Outcome:
        """Raise the matching domain error for a failed outcome, else return self."""
        if self.ok:
            return self
        error_cls = _FAILURE_ERRORS.get(self.reason, ConflictError)
        raise error_cls(self.detail or self.reason.value)
