"""
Dictionary-based role data source implementation.

This module defines the DictRoleSource class, which implements the
RoleDataSource interface over in-memory lists. This is useful for testing,
for synthetic graphs, and for snapshot files exported from a catalog.
"""

import json
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from privilege_lineage.exceptions import LineageError, SourceUnavailableError
from privilege_lineage.models.grant import Grant, ResourceKind
from privilege_lineage.models.role import MembershipEdge, Role
from privilege_lineage.source.provider import RoleDataSource
from privilege_lineage.utils.cancellation import CancelToken, check_cancelled

RoleLike = Union[Role, str, dict]
EdgeLike = Union[MembershipEdge, tuple, list, dict]
GrantLike = Union[Grant, tuple, list, dict]


class DictRoleSource(RoleDataSource):
    """Role data source backed by in-memory lists.

    Roles, edges and grants may be given as model objects or as plain data:

    - role: "alice", {"name": "alice", "login": true, "inherit": true}
    - edge: ("alice", "reporting_group"), {"member": ..., "group": ...,
      "admin_option": false, "inherit": null}; "inherit" is the
      per-membership option, null meaning the member's own flag applies
    - grant: ("reporting_group", "hr", "employees", None, "SELECT") or
      {"grantee": ..., "schema": ..., "object": ..., "column": ...,
      "privilege": ...}

    If roles is None, the role set is every name that appears in the edges
    or grants.

    Attributes:
        roles: Role objects, keyed by name.
        memberships: MembershipEdge objects, in the given order.
        grants: Grant objects, in the given order.

    Example:
        >>> source = DictRoleSource(
        ...     memberships=[("alice", "reporting_group")],
        ...     grants=[("reporting_group", "hr", "employees", None, "SELECT")],
        ... )
        >>> sorted(r.name for r in source.list_roles())
        ['alice', 'reporting_group']
    """

    name = "dict"

    def __init__(
        self,
        roles: Optional[Iterable[RoleLike]] = None,
        memberships: Optional[Iterable[EdgeLike]] = None,
        grants: Optional[Iterable[GrantLike]] = None,
    ) -> None:
        self.memberships: list[MembershipEdge] = [
            _to_edge(edge) for edge in memberships or []
        ]
        self.grants: list[Grant] = [_to_grant(grant) for grant in grants or []]

        if roles is None:
            names: set[str] = set()
            for edge in self.memberships:
                names.update((edge.member, edge.group))
            names.update(grant.grantee for grant in self.grants)
            self.roles: dict[str, Role] = {name: Role(name) for name in names}
        else:
            self.roles = {}
            for item in roles:
                role = _to_role(item)
                self.roles[role.name] = role

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DictRoleSource":
        """Build a source from a {"roles", "memberships", "grants"} dict."""
        if not isinstance(data, dict):
            raise LineageError("Role snapshot must be a JSON object")
        try:
            return cls(
                roles=data.get("roles"),
                memberships=data.get("memberships", []),
                grants=data.get("grants", []),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise LineageError(f"Invalid role snapshot: {e}") from e

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "DictRoleSource":
        """Load a snapshot file written by to_json() or by hand.

        Raises:
            SourceUnavailableError: If the file cannot be read.
            LineageError: If the file is not a valid snapshot.
        """
        snapshot_path = Path(path)
        try:
            text = snapshot_path.read_text(encoding="utf-8")
        except OSError as e:
            raise SourceUnavailableError(
                f"Cannot read role snapshot '{snapshot_path}': {e}",
                source=str(snapshot_path),
            ) from e
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise LineageError(
                f"Role snapshot '{snapshot_path}' is not valid JSON: {e}"
            ) from e
        source = cls.from_dict(data)
        source.name = f"json:{snapshot_path.name}"
        return source

    def to_dict(self) -> dict[str, Any]:
        """Export the snapshot as plain data (the from_dict format)."""
        return {
            "roles": [
                {"name": r.name, "login": r.can_login, "inherit": r.inherit}
                for r in sorted(self.roles.values(), key=lambda r: r.name)
            ],
            "memberships": [
                {
                    "member": e.member,
                    "group": e.group,
                    "admin_option": e.admin_option,
                    "inherit": e.inherit,
                }
                for e in self.memberships
            ],
            "grants": [g.to_dict() for g in self.grants],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def list_roles(
        self, cancel_token: Optional[CancelToken] = None
    ) -> list[Role]:
        check_cancelled(cancel_token)
        return list(self.roles.values())

    def list_memberships(
        self, cancel_token: Optional[CancelToken] = None
    ) -> list[MembershipEdge]:
        check_cancelled(cancel_token)
        return self.memberships.copy()

    def list_grants(
        self,
        grantees: Iterable[str],
        kind_filter: Optional[ResourceKind] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> list[Grant]:
        check_cancelled(cancel_token)
        wanted = set(grantees)
        return [
            grant
            for grant in self.grants
            if grant.grantee in wanted
            and (kind_filter is None or grant.kind == kind_filter)
        ]


def _to_role(item: RoleLike) -> Role:
    if isinstance(item, Role):
        return item
    if isinstance(item, str):
        return Role(item)
    if isinstance(item, dict):
        return Role(
            name=item["name"],
            can_login=bool(item.get("login", item.get("can_login", False))),
            inherit=bool(item.get("inherit", True)),
        )
    raise TypeError(f"Cannot interpret {item!r} as a role")


def _to_edge(item: EdgeLike) -> MembershipEdge:
    if isinstance(item, MembershipEdge):
        return item
    if isinstance(item, dict):
        return MembershipEdge(
            member=item["member"],
            group=item["group"],
            admin_option=bool(item.get("admin_option", False)),
            inherit=_optional_bool(item.get("inherit")),
        )
    if isinstance(item, (tuple, list)) and len(item) == 2:
        return MembershipEdge(member=item[0], group=item[1])
    raise TypeError(f"Cannot interpret {item!r} as a membership edge")


def _optional_bool(value: Any) -> Optional[bool]:
    return None if value is None else bool(value)


def _to_grant(item: GrantLike) -> Grant:
    if isinstance(item, Grant):
        return item
    if isinstance(item, dict):
        return Grant.from_row(
            item["grantee"],
            item["schema"],
            item.get("object"),
            item.get("column"),
            item["privilege"],
        )
    if isinstance(item, (tuple, list)) and len(item) == 5:
        return Grant.from_row(*item)
    raise TypeError(f"Cannot interpret {item!r} as a grant")
