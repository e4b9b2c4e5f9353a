"""
Custom exception classes for privilege lineage resolution.

This module defines all custom exceptions used throughout the privilege
lineage package. Every exception carries the context (offending role,
edge, source) a caller needs to log or display the failure.
"""

from typing import Optional


class LineageError(Exception):
    """Base exception class for all privilege lineage errors.

    This exception serves as the base class for all custom exceptions in the
    privilege lineage package. It can be used to catch any resolution error.

    Attributes:
        message: Human-readable error message describing the error.
    """

    def __init__(self, message: str) -> None:
        """Initialize a LineageError with a message.

        Args:
            message: Error message describing what went wrong.
        """
        self.message = message
        super().__init__(self.message)


class SourceUnavailableError(LineageError):
    """Exception raised when the role data source cannot be reached.

    Transport and connection failures are surfaced to the caller as-is; the
    resolver never retries. The original exception is chained as
    ``__cause__``.

    Attributes:
        message: Error message describing the failure.
        source: Name of the data source that failed.
    """

    def __init__(self, message: str, source: Optional[str] = None) -> None:
        """Initialize a SourceUnavailableError.

        Args:
            message: Error message describing the failure.
            source: Optional name of the data source that failed.
        """
        super().__init__(message)
        self.source = source


class UnknownRoleError(LineageError):
    """Exception raised when a query target is not a known role.

    Attributes:
        message: Error message describing the unknown role.
        role: The role name that could not be found.
        available_roles: Known roles, used to suggest close matches.
    """

    def __init__(
        self,
        message: str,
        role: str,
        available_roles: Optional[list[str]] = None,
    ) -> None:
        """Initialize an UnknownRoleError.

        Args:
            message: Error message describing the unknown role.
            role: The role name that could not be found.
            available_roles: Optional list of known role names.
        """
        self.role = role
        self.available_roles = available_roles or []

        if self.available_roles:
            message = self._build_message(message)

        super().__init__(message)

    def _build_message(self, message: str) -> str:
        """Append close matches from the known roles to the message."""
        import difflib

        matches = difflib.get_close_matches(
            self.role, self.available_roles, n=3
        )
        if not matches:
            return message
        return f"{message} Did you mean: {', '.join(matches)}?"


class MalformedEdgeError(LineageError):
    """Exception raised when a membership edge is referentially inconsistent.

    Raised in strict mode when an edge references a role absent from the
    role set, or when an edge points a role at itself.

    Attributes:
        message: Error message describing the problem.
        member: Member side of the offending edge.
        group: Group side of the offending edge.
        reason: Short machine-readable reason ("unknown_member",
            "unknown_group" or "self_edge").
    """

    def __init__(
        self, message: str, member: str, group: str, reason: str
    ) -> None:
        """Initialize a MalformedEdgeError.

        Args:
            message: Error message describing the problem.
            member: Member side of the offending edge.
            group: Group side of the offending edge.
            reason: Short machine-readable reason.
        """
        super().__init__(message)
        self.member = member
        self.group = group
        self.reason = reason


class CancelledError(LineageError):
    """Exception raised when the caller cancels a resolution.

    Also raised when the deadline of a CancelToken passes. No partial
    result is ever returned alongside this error.
    """


class TraversalLimitError(LineageError):
    """Exception raised when a traversal exceeds its configured bounds.

    Attributes:
        message: Error message describing the exceeded bound.
        limit: Name of the bound ("max_depth" or "max_roles").
        value: Configured value of the bound.
    """

    def __init__(self, message: str, limit: str, value: int) -> None:
        super().__init__(message)
        self.limit = limit
        self.value = value


class ScriptParseError(LineageError):
    """Exception raised when a GRANT script cannot be tokenized.

    Attributes:
        message: Error message describing the failure.
        statement: Optional statement text for context.
    """

    def __init__(self, message: str, statement: Optional[str] = None) -> None:
        super().__init__(message)
        self.statement = statement
