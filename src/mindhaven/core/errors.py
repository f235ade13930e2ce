"""Error taxonomy shared by the membership core and its collaborators.

Expected failures (missing rights, missing records, the last-admin guard) are
reported as :class:`mindhaven.services.outcome.Outcome` values. The classes
below are raised either for malformed input, for infrastructure failures, or
when a caller explicitly converts a failed outcome into an exception.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence


class MindHavenError(RuntimeError):
    """Base class for all MindHaven errors."""


class ValidationError(MindHavenError):
    """Raised when required input is missing or malformed.

    Attributes:
        errors: Mapping of field name to a human readable message.
    """

    def __init__(self, errors: Mapping[str, str]) -> None:
        self.errors = dict(errors)
        summary = "; ".join(f"{field}: {message}" for field, message in self.errors.items())
        super().__init__(summary or "Invalid input")


class AuthorizationError(MindHavenError):
    """Raised when the acting user lacks the role required for an action."""


class AuthenticationRequiredError(AuthorizationError):
    """Raised when a mutating action is attempted without a signed-in user."""


class NotFoundError(MindHavenError):
    """Raised when a referenced community or membership does not exist."""


class ConflictError(MindHavenError):
    """Raised when an action conflicts with a community invariant."""


class StoreError(MindHavenError):
    """Raised when the underlying document store call fails.

    The membership core never retries these automatically.
    """


class PartialWriteError(StoreError):
    """A multi-document write sequence stopped after some steps completed.

    Attributes:
        community_id: Community the sequence was operating on.
        completed_steps: Names of the steps that were applied.
        failed_step: Name of the step that raised.
    """

    def __init__(
        self,
        community_id: str,
        completed_steps: Sequence[str],
        failed_step: str,
        message: str | None = None,
    ) -> None:
        self.community_id = community_id
        self.completed_steps = list(completed_steps)
        self.failed_step = failed_step
        super().__init__(
            message
            or (
                f"Write sequence for community {community_id} failed at '{failed_step}' "
                f"after {self.completed_steps or 'no steps'}"
            )
        )


class PartialCascadeFailure(PartialWriteError):
    """A community cascade delete failed partway; cleanup may be required."""
