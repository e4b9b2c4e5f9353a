"""
Graph loader for privilege lineage resolution.

This module defines the GraphLoader class, which materializes the role set,
the membership graph and the grants of a set of roles from a RoleDataSource,
and the GrantIndex class, which maps each role to its direct grants.
"""

import warnings
from typing import Callable, Dict, Iterable, List, Optional, TypeVar

from privilege_lineage.exceptions import (
    LineageError,
    MalformedEdgeError,
    SourceUnavailableError,
)
from privilege_lineage.graph.membership_graph import MembershipGraph
from privilege_lineage.models.config import ErrorMode, ResolverConfig
from privilege_lineage.models.grant import Grant, ResourceKind
from privilege_lineage.models.role import MembershipEdge
from privilege_lineage.source.provider import RoleDataSource
from privilege_lineage.utils.cancellation import CancelToken, check_cancelled
from privilege_lineage.utils.warnings import WarningCollector

T = TypeVar("T")


class GrantIndex:
    """Direct grants of each role.

    Identical grants are stored once, so a grant listed twice by the
    source (for example, made by two different grantors) yields one row.

    Attributes:
        by_role: Role name -> grants, sorted by resource then privilege.

    Example:
        >>> index = GrantIndex(grants)
        >>> [g.privilege for g in index.grants_for("reporting_group")]
        ['SELECT']
    """

    def __init__(self, grants: Iterable[Grant] = ()) -> None:
        collected: Dict[str, Dict[Grant, None]] = {}
        for grant in grants:
            collected.setdefault(grant.grantee, {})[grant] = None
        self.by_role: Dict[str, List[Grant]] = {
            role: sorted(
                found, key=lambda g: (*g.resource.sort_key(), g.privilege)
            )
            for role, found in collected.items()
        }

    def __len__(self) -> int:
        return sum(len(grants) for grants in self.by_role.values())

    def grants_for(self, role: str) -> List[Grant]:
        """Direct grants of one role (empty list if none)."""
        return self.by_role.get(role, [])


class GraphLoader:
    """Materializes role data from a source for one resolution.

    Responsibilities:
    1. Read roles and membership edges into a MembershipGraph
    2. Apply the malformed edge policy (strict or lenient)
    3. Read the grants of the roles a traversal reached

    Usage:
        loader = GraphLoader(source, config, collector)
        graph = loader.load_graph(cancel_token)
        grants = loader.load_grants(["alice", "reporting_group"])
    """

    def __init__(
        self,
        source: RoleDataSource,
        config: Optional[ResolverConfig] = None,
        collector: Optional[WarningCollector] = None,
    ) -> None:
        """Initialize a GraphLoader.

        Args:
            source: Data source to read from.
            config: Resolver configuration (policies and bounds).
            collector: Collector receiving warnings. A new one is created
                if omitted.
        """
        self.source = source
        self.config = config or ResolverConfig()
        self.collector = collector if collector is not None else WarningCollector()

    def load_graph(
        self, cancel_token: Optional[CancelToken] = None
    ) -> MembershipGraph:
        """Read roles and memberships and build the membership graph.

        Returns:
            MembershipGraph holding every role and every valid edge. Edges
            skipped under the lenient policy are listed in
            graph.skipped_edges.

        Raises:
            SourceUnavailableError: If the source cannot be reached.
            MalformedEdgeError: In strict mode, on the first malformed edge.
            CancelledError: If the token is cancelled.
        """
        roles = self._call(self.source.list_roles, cancel_token)
        edges = self._call(self.source.list_memberships, cancel_token)
        for warning in self.source.diagnostics():
            self.collector.warnings.append(warning)

        graph = MembershipGraph()
        for role in roles:
            graph.add_role(role)

        for edge in edges:
            reason = self._edge_problem(graph, edge)
            if reason is None:
                graph.add_membership(edge)
                continue
            self._handle_malformed_edge(graph, edge, reason)

        return graph

    def load_grants(
        self,
        roles: Iterable[str],
        kind_filter: Optional[ResourceKind] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> GrantIndex:
        """Read the direct grants of the given roles.

        Grants returned for roles outside the requested set, or for another
        resource kind than kind_filter, are ignored.

        Raises:
            SourceUnavailableError: If the source cannot be reached.
            CancelledError: If the token is cancelled.
        """
        wanted = set(roles)
        grants = self._call(
            lambda token: self.source.list_grants(wanted, kind_filter, token),
            cancel_token,
        )

        kept: List[Grant] = []
        for grant in grants:
            if grant.grantee not in wanted:
                continue
            if kind_filter is not None and grant.kind != kind_filter:
                continue
            kept.append(grant)
        return GrantIndex(kept)

    def _call(
        self,
        method: Callable[[Optional[CancelToken]], T],
        cancel_token: Optional[CancelToken],
    ) -> T:
        check_cancelled(cancel_token)
        try:
            result = method(cancel_token)
        except LineageError:
            raise
        except Exception as e:
            raise SourceUnavailableError(
                f"Data source '{self.source.describe()}' failed: {e}",
                source=self.source.describe(),
            ) from e
        check_cancelled(cancel_token)
        return result

    @staticmethod
    def _edge_problem(
        graph: MembershipGraph, edge: MembershipEdge
    ) -> Optional[str]:
        if edge.is_self_edge:
            return "self_edge"
        if edge.member not in graph:
            return "unknown_member"
        if edge.group not in graph:
            return "unknown_group"
        return None

    def _handle_malformed_edge(
        self, graph: MembershipGraph, edge: MembershipEdge, reason: str
    ) -> None:
        descriptions = {
            "self_edge": "a role cannot be a member of itself",
            "unknown_member": f"member role '{edge.member}' does not exist",
            "unknown_group": f"group role '{edge.group}' does not exist",
        }
        description = descriptions[reason]

        if self.config.on_malformed_edge == ErrorMode.FAIL:
            raise MalformedEdgeError(
                f"Malformed membership edge '{edge}': {description}",
                member=edge.member,
                group=edge.group,
                reason=reason,
            )

        graph.skipped_edges.append(edge)
        self.collector.add_skipped_edge_warning(
            edge.member, edge.group, description
        )
        warnings.warn(
            f"Skipping malformed membership edge '{edge}': {description}",
            UserWarning,
            stacklevel=3,
        )
