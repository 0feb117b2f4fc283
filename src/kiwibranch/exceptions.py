"""Kiwi exception hierarchy.

All kiwibranch-specific exceptions inherit from KiwiError.
"""


class KiwiError(Exception):
    """Base exception for all kiwibranch errors."""


class RequestValidationError(KiwiError):
    """Raised when a required field is missing or malformed.

    Named RequestValidationError (not ValidationError) to avoid
    collision with pydantic.ValidationError.  Always raised before any
    write, so no partial state exists when it is seen.
    """

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid '{field}': {reason}")


class InvalidBranchVariantError(RequestValidationError):
    """Raised when branch fields mix the root/fork/merge variants."""

    def __init__(self, reason: str) -> None:
        super().__init__("branch", reason)


class NotFoundError(KiwiError):
    """Base for lookups of a branch, message or cutoff that does not exist."""


class BranchNotFoundError(NotFoundError):
    """Raised when a branch lookup fails."""

    def __init__(self, branch_id: str) -> None:
        self.branch_id = branch_id
        super().__init__(f"Branch not found: {branch_id}")


class MessageNotFoundError(NotFoundError):
    """Raised when a message id lookup fails."""

    def __init__(self, message_id: str) -> None:
        self.message_id = message_id
        super().__init__(f"Message not found: {message_id}")


class CutoffNotFoundError(NotFoundError):
    """Raised when a fork cutoff message id does not resolve."""

    def __init__(self, message_id: str) -> None:
        self.message_id = message_id
        super().__init__(f"Fork cutoff message not found: {message_id}")


class BranchExistsError(KiwiError):
    """Raised when an explicit branch id is already taken."""

    def __init__(self, branch_id: str) -> None:
        self.branch_id = branch_id
        super().__init__(f"Branch already exists: {branch_id}")


class StorageError(KiwiError):
    """Raised when the underlying store fails a read or a primary write.

    The original driver exception is chained as ``__cause__``.
    """

    def __init__(self, operation: str, detail: str = "") -> None:
        self.operation = operation
        msg = f"Storage failure during {operation}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)
