"""
Abstract role data source interface.

This module defines the RoleDataSource abstract base class. The resolver never
reads role data from ambient global state: a data source is injected at
construction time and is asked, on every resolution, for the role set, the
membership edges and the grants of the roles it needs.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from privilege_lineage.models.grant import Grant, ResourceKind
from privilege_lineage.models.role import MembershipEdge, Role
from privilege_lineage.utils.cancellation import CancelToken
from privilege_lineage.utils.warnings import LineageWarning


class RoleDataSource(ABC):
    """Abstract interface for role, membership and grant providers.

    Implementations can read from various systems of record, such as:
    - A live database catalog (PostgreSQL pg_roles, pg_auth_members, ...)
    - A snapshot file (JSON)
    - A SQL script of CREATE ROLE / GRANT statements
    - In-memory dictionaries for tests

    Implementations must be safe to call from several threads at once, or
    document that they are not. They should raise SourceUnavailableError
    (or let the loader wrap any other exception into it) when the system of
    record cannot be reached.

    Attributes:
        name: Short human-readable name used in error messages.

    Example:
        >>> class StaticSource(RoleDataSource):
        ...     def list_roles(self, cancel_token=None):
        ...         return [Role("alice", can_login=True)]
        ...     def list_memberships(self, cancel_token=None):
        ...         return []
        ...     def list_grants(self, grantees, kind_filter=None,
        ...                     cancel_token=None):
        ...         return []
    """

    name: str = "source"

    @abstractmethod
    def list_roles(
        self, cancel_token: Optional[CancelToken] = None
    ) -> list[Role]:
        """Return every role known to the source.

        Args:
            cancel_token: Optional token; implementations that block should
                honor its remaining time.

        Returns:
            List of Role objects. Order is not significant.
        """

    @abstractmethod
    def list_memberships(
        self, cancel_token: Optional[CancelToken] = None
    ) -> list[MembershipEdge]:
        """Return every membership edge (member, group).

        Edges are returned raw: they may reference unknown roles, point a
        role at itself or form cycles. Validation is the loader's job.

        Args:
            cancel_token: Optional token; implementations that block should
                honor its remaining time.

        Returns:
            List of MembershipEdge objects.
        """

    @abstractmethod
    def list_grants(
        self,
        grantees: Iterable[str],
        kind_filter: Optional[ResourceKind] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> list[Grant]:
        """Return the direct grants held by the given roles.

        Args:
            grantees: Role names whose grants are requested.
            kind_filter: If given, only grants on this kind of resource.
            cancel_token: Optional token; implementations that block should
                honor its remaining time.

        Returns:
            List of Grant objects whose grantee is in grantees.
        """

    def diagnostics(self) -> list[LineageWarning]:
        """Return warnings produced while the source read its data.

        The loader attaches these to every report built from this source.
        The default implementation has nothing to report.
        """
        return []

    def describe(self) -> str:
        """Return a one-line description for CLI output."""
        return self.name
