"""
Configuration model for privilege lineage resolution.

This module defines the ResolverConfig class and ErrorMode enum, which control
the behavior of the resolver, including how malformed membership data is
handled and the defensive bounds applied to traversal.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorMode(str, Enum):
    """Enumeration of error handling modes.

    Attributes:
        FAIL: Raise an exception immediately (strict mode).
        WARN: Skip the offending record, record a warning and continue
            (lenient mode).
        IGNORE: Skip the offending record silently. Not accepted where a
            skipped record would make the result silently partial.

    Example:
        >>> ErrorMode.FAIL.value
        'fail'
        >>> ErrorMode.values()
        ['fail', 'warn', 'ignore']
    """

    FAIL = "fail"
    WARN = "warn"
    IGNORE = "ignore"

    @classmethod
    def values(cls) -> list[str]:
        """Return a list of all possible error mode values."""
        return [member.value for member in cls]


@dataclass
class ResolverConfig:
    """Configuration settings for privilege lineage resolution.

    Attributes:
        on_malformed_edge: Policy for membership edges that reference an
            unknown role or point a role at itself. FAIL aborts the whole
            resolution, WARN skips the edge and records a warning in the
            report. IGNORE is rejected. Defaults to ErrorMode.WARN.
        max_depth: Maximum number of membership hops followed from the
            start role. Defaults to 64.
        max_roles: Maximum number of roles a single traversal may visit.
            Defaults to 10000.
        default_schema: Schema used for unqualified table names in GRANT
            scripts. Defaults to "public".
        max_workers: Thread pool size used by resolve_many(). Defaults to 4.
        honor_noinherit: If True, memberships that do not inherit (a
            NOINHERIT member role, or a membership granted WITH INHERIT
            FALSE) are not followed for privileges. Defaults to False:
            every membership edge is followed.

    Example:
        >>> config = ResolverConfig(on_malformed_edge=ErrorMode.FAIL)
        >>> config.max_depth
        64
    """

    on_malformed_edge: ErrorMode = ErrorMode.WARN
    max_depth: int = 64
    max_roles: int = 10_000
    default_schema: str = "public"
    max_workers: int = 4
    honor_noinherit: bool = False

    def __post_init__(self) -> None:
        """Validate configuration settings."""
        if not isinstance(self.on_malformed_edge, ErrorMode):
            raise TypeError("on_malformed_edge must be an ErrorMode instance")
        if self.on_malformed_edge == ErrorMode.IGNORE:
            raise ValueError(
                "on_malformed_edge cannot be 'ignore': skipped edges must "
                "always be reported"
            )
        if not isinstance(self.max_depth, int) or self.max_depth < 1:
            raise ValueError("max_depth must be a positive integer")
        if not isinstance(self.max_roles, int) or self.max_roles < 1:
            raise ValueError("max_roles must be a positive integer")
        if not self.default_schema:
            raise ValueError("default_schema cannot be empty")
        if not isinstance(self.max_workers, int) or self.max_workers < 1:
            raise ValueError("max_workers must be a positive integer")
        if not isinstance(self.honor_noinherit, bool):
            raise TypeError("honor_noinherit must be a bool")

    @property
    def strict(self) -> bool:
        """True when malformed edges abort the resolution."""
        return self.on_malformed_edge == ErrorMode.FAIL
