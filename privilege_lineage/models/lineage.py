"""
Lineage models produced by the resolver.

This module defines ReachableRole, one role in the transitive closure of a
start role's memberships, and LineageRow, one privilege a user obtains and
the role in the chain it originates from. Both are derived values: they are
recomputed on every query and never persisted.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from privilege_lineage.models.grant import ResourceKind, ResourceRef


@dataclass(frozen=True)
class ReachableRole:
    """A role reachable from a start role by following membership edges.

    Attributes:
        role: Name of the reachable role.
        via: Name of the immediate member role through which this role was
            reached. None for the start role itself.
        depth: Number of membership hops from the start role (0 for the
            start role).
        path: Role names from the start role to this role, inclusive.

    Example:
        >>> r = ReachableRole("reporting_group", via="finance_group", depth=2,
        ...                   path=("bob", "finance_group", "reporting_group"))
        >>> r.is_start
        False
        >>> r.path_string()
        'bob -> finance_group -> reporting_group'
    """

    role: str
    via: Optional[str] = None
    depth: int = 0
    path: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_start(self) -> bool:
        """True for the start role (the self-membership base case)."""
        return self.depth == 0

    def path_string(self, use_ascii: bool = True) -> str:
        """Return the membership chain as a human-readable string."""
        separator = " -> " if use_ascii else " → "
        return separator.join(self.path or (self.role,))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "role": self.role,
            "via": self.via,
            "depth": self.depth,
            "path": list(self.path),
        }


@dataclass(frozen=True)
class LineageRow:
    """One privilege a user holds and where in the chain it comes from.

    privilege_from_role is the role the grant was made to, which is the user
    itself for direct grants and a group somewhere up the chain otherwise.

    Attributes:
        user: The role the lineage was resolved for.
        privilege_from_role: The role holding the grant.
        resource: Resource the privilege applies to.
        privilege: Privilege name.
    """

    user: str
    privilege_from_role: str
    resource: ResourceRef
    privilege: str

    @property
    def schema(self) -> str:
        return self.resource.schema

    @property
    def object(self) -> Optional[str]:
        return self.resource.object

    @property
    def column(self) -> Optional[str]:
        return self.resource.column

    @property
    def kind(self) -> ResourceKind:
        return self.resource.kind

    @property
    def is_inherited(self) -> bool:
        """True if the privilege comes from a group rather than the user."""
        return self.privilege_from_role != self.user

    def sort_key(self) -> tuple[str, str, str, str, str]:
        """Audit ordering: origin role, then schema, object, column."""
        return (self.privilege_from_role, *self.resource.sort_key(), self.privilege)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user": self.user,
            "privilege_from_role": self.privilege_from_role,
            "schema": self.schema,
            "object": self.object,
            "column": self.column,
            "privilege": self.privilege,
        }
