"""
Traversal engine for role membership closure.

This module defines the TraversalEngine class, which computes the set of
roles reachable from a start role by following member -> group edges, and
the reverse set of roles that inherit from a group.
"""

from collections import deque
from typing import Callable, Deque, Dict, List, Optional

from privilege_lineage.exceptions import TraversalLimitError, UnknownRoleError
from privilege_lineage.graph.membership_graph import MembershipGraph
from privilege_lineage.models.config import ResolverConfig
from privilege_lineage.models.lineage import ReachableRole
from privilege_lineage.utils.cancellation import CancelToken, check_cancelled


class TraversalEngine:
    """Breadth-first traversal over the membership graph.

    Core algorithm: iterative BFS with a visited set. Each role is emitted
    at most once, so cycles terminate and never produce duplicates. The
    start role is the first node emitted (every role is a member of
    itself). Groups are expanded in lexical order, which makes the
    reported path of each role the shortest one, with ties broken
    reproducibly.

    By default every membership edge is followed. With
    ResolverConfig.honor_noinherit set, an edge is followed for privileges
    only if it inherits: its own inherit option when the source reports
    one, else the member role's inherit flag (PostgreSQL's NOINHERIT).

    Usage:
        engine = TraversalEngine(graph, config)
        for reachable in engine.reachable_roles("bob"):
            print(reachable.role, reachable.via, reachable.path_string())
    """

    def __init__(
        self, graph: MembershipGraph, config: Optional[ResolverConfig] = None
    ) -> None:
        """Initialize a TraversalEngine.

        Args:
            graph: Validated membership graph.
            config: Resolver configuration providing traversal bounds.
        """
        self.graph = graph
        self.config = config or ResolverConfig()

    def reachable_roles(
        self,
        start: str,
        respect_inherit: bool = True,
        cancel_token: Optional[CancelToken] = None,
    ) -> List[ReachableRole]:
        """Compute the transitive closure of a role's memberships.

        Args:
            start: Name of the start role.
            respect_inherit: If False, non-inheriting memberships are
                followed even when honor_noinherit is set (used for the
                membership tree view).
            cancel_token: Optional token checked before each expansion.

        Returns:
            Reachable roles including the start role, sorted by role name.

        Raises:
            UnknownRoleError: If start is not in the graph.
            TraversalLimitError: If max_depth or max_roles is exceeded.
            CancelledError: If the token is cancelled.
        """
        self._require_role(start)
        if respect_inherit and self.config.honor_noinherit:
            neighbours = self._inheriting_groups
        else:
            neighbours = self.graph.groups_of
        return self._walk(start, neighbours, cancel_token)

    def inheritors(
        self, group: str, cancel_token: Optional[CancelToken] = None
    ) -> List[ReachableRole]:
        """Compute every role that inherits the privileges of a group.

        The walk goes from the group to its members. With honor_noinherit
        set, a member whose membership does not inherit is not an
        inheritor, and nothing below it is reached through it.

        Returns:
            Inheriting roles, excluding the group itself, sorted by name.
            Each entry's path runs from the group down to the role.
        """
        self._require_role(group)
        if self.config.honor_noinherit:
            neighbours = self._inheriting_members
        else:
            neighbours = self.graph.members_of
        reached = self._walk(group, neighbours, cancel_token)
        return [role for role in reached if not role.is_start]

    def _inheriting_groups(self, name: str) -> List[str]:
        return [
            group
            for group in self.graph.groups_of(name)
            if self.graph.inherits_through(name, group)
        ]

    def _inheriting_members(self, name: str) -> List[str]:
        return [
            member
            for member in self.graph.members_of(name)
            if self.graph.inherits_through(member, name)
        ]

    def _require_role(self, name: str) -> None:
        if not self.graph.has_role(name):
            raise UnknownRoleError(
                f"Role '{name}' does not exist.",
                role=name,
                available_roles=self.graph.role_names(),
            )

    def _walk(
        self,
        start: str,
        neighbours: Callable[[str], List[str]],
        cancel_token: Optional[CancelToken],
    ) -> List[ReachableRole]:
        max_depth = self.config.max_depth
        max_roles = self.config.max_roles

        found: Dict[str, ReachableRole] = {
            start: ReachableRole(start, via=None, depth=0, path=(start,))
        }
        queue: Deque[str] = deque([start])

        while queue:
            check_cancelled(cancel_token)
            current = found[queue.popleft()]

            for neighbour in neighbours(current.role):
                if neighbour in found:
                    continue
                depth = current.depth + 1
                if depth > max_depth:
                    raise TraversalLimitError(
                        f"Membership chain from '{start}' is deeper than "
                        f"max_depth={max_depth}",
                        limit="max_depth",
                        value=max_depth,
                    )
                if len(found) >= max_roles:
                    raise TraversalLimitError(
                        f"Traversal from '{start}' reached more than "
                        f"max_roles={max_roles} roles",
                        limit="max_roles",
                        value=max_roles,
                    )
                found[neighbour] = ReachableRole(
                    neighbour,
                    via=current.role,
                    depth=depth,
                    path=current.path + (neighbour,),
                )
                queue.append(neighbour)

        return sorted(found.values(), key=lambda r: r.role)
