"""Custom exceptions for MealSplit."""


class MealSplitError(Exception):
    """Base exception for all MealSplit errors."""

    pass


class ConfigurationError(MealSplitError):
    """Raised when configuration is invalid or missing."""

    pass


class InvalidRecordError(MealSplitError):
    """Raised when an expense or meal entry is rejected at ingestion time."""

    pass


class RecordNotFoundError(MealSplitError):
    """Raised when an expense or meal id does not exist."""

    def __init__(self, kind: str, record_id: int, message: str | None = None):
        self.kind = kind
        self.record_id = record_id
        super().__init__(message or f"{kind.capitalize()} {record_id} not found")


class MemberNotFoundError(MealSplitError):
    """Raised when a member id or name is not on the roster."""

    def __init__(self, member: int | str, message: str | None = None):
        self.member = member
        super().__init__(message or f"Member {member!r} not found")


class DuplicateMemberError(MealSplitError):
    """Raised when adding a member whose name is already taken."""

    pass


class AuthenticationError(MealSplitError):
    """Raised when the admin passcode does not match."""

    pass
