"""
Role and membership edge models.

This module defines the Role class, a named principal in the access-control
graph, and the MembershipEdge class, the directed "member inherits group"
relation between two roles.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Role:
    """A named principal in the access-control graph.

    A role may or may not be usable as a login identity; the login flag is
    carried for display only. The inherit flag mirrors PostgreSQL's
    INHERIT / NOINHERIT attribute. Lineage follows every membership unless
    ResolverConfig.honor_noinherit is set, in which case a NOINHERIT role
    does not use the privileges of the groups it belongs to.

    Attributes:
        name: Unique role name (required).
        can_login: True if the role can be used to log in.
        inherit: True if the role inherits privileges of its groups.

    Example:
        >>> alice = Role("alice", can_login=True)
        >>> alice.kind
        'user'
        >>> Role("reporting_group").kind
        'group'
    """

    name: str
    can_login: bool = False
    inherit: bool = True

    def __post_init__(self) -> None:
        """Validate that the role name is not empty."""
        if not self.name:
            raise ValueError("role name cannot be empty")

    @property
    def kind(self) -> str:
        """Return "user" for login roles and "group" otherwise."""
        return "user" if self.can_login else "group"

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class MembershipEdge:
    """A directed membership edge: member inherits group's privileges.

    Attributes:
        member: Name of the member role.
        group: Name of the group role.
        admin_option: True if the membership was granted WITH ADMIN OPTION.
            Informational only, it does not affect lineage.
        inherit: Per-membership inheritance (PostgreSQL 16 INHERIT option).
            None means the member role's own inherit flag applies.

    Example:
        >>> edge = MembershipEdge("alice", "reporting_group")
        >>> edge.is_self_edge
        False
        >>> str(edge)
        'alice -> reporting_group'
    """

    member: str
    group: str
    admin_option: bool = False
    inherit: Optional[bool] = None

    def __post_init__(self) -> None:
        """Validate that both ends are named."""
        if not self.member:
            raise ValueError("member role name cannot be empty")
        if not self.group:
            raise ValueError("group role name cannot be empty")

    @property
    def is_self_edge(self) -> bool:
        """True if the edge points a role at itself."""
        return self.member == self.group

    def __str__(self) -> str:
        return f"{self.member} -> {self.group}"
