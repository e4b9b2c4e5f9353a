"""
Privilege lineage resolver.

This module defines the PrivilegeLineageResolver class, which answers "who
gets what from where": for a user, every privilege it obtains directly or
through nested role memberships, attributed to the role in the chain that
holds the grant.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Tuple

from privilege_lineage.graph.membership_graph import MembershipGraph
from privilege_lineage.loader.graph_loader import GrantIndex, GraphLoader
from privilege_lineage.models.config import ResolverConfig
from privilege_lineage.models.grant import Grant, ResourceKind
from privilege_lineage.models.lineage import LineageRow, ReachableRole
from privilege_lineage.models.report import LineageReport
from privilege_lineage.resolver.traversal import TraversalEngine
from privilege_lineage.source.provider import RoleDataSource
from privilege_lineage.utils.cancellation import CancelToken
from privilege_lineage.utils.warnings import WarningCollector


class PrivilegeLineageResolver:
    """Privilege lineage resolver.

    Responsibilities:
    1. Load the membership graph from the injected data source
    2. Walk the user's memberships (TraversalEngine)
    3. Join the reachable roles against their grants and sort the rows

    The resolver keeps no state between calls: every resolution reloads the
    role data from the source, so concurrent calls never share mutable
    state. Reports are sorted by (privilege_from_role, schema, object,
    column, privilege), so repeated calls on unchanged data return
    identical output.

    Usage:
        resolver = PrivilegeLineageResolver(source)

        # Full lineage
        for row in resolver.resolve_lineage("bob"):
            print(row.privilege_from_role, row.resource, row.privilege)

        # Narrower audits
        resolver.table_privileges("bob")
        resolver.schema_privileges("bob")
        resolver.column_privileges("bob")

        # Membership tree
        resolver.membership_tree("bob").reachable_roles
    """

    def __init__(
        self,
        source: RoleDataSource,
        config: Optional[ResolverConfig] = None,
    ) -> None:
        """Initialize a PrivilegeLineageResolver.

        Args:
            source: Data source for roles, memberships and grants.
            config: Optional resolver configuration.
        """
        self.source = source
        self.config = config or ResolverConfig()

    def load_graph(
        self, cancel_token: Optional[CancelToken] = None
    ) -> Tuple[MembershipGraph, WarningCollector]:
        """Load the membership graph and the warnings produced loading it."""
        collector = WarningCollector()
        loader = GraphLoader(self.source, self.config, collector)
        return loader.load_graph(cancel_token), collector

    def resolve_lineage(
        self,
        user: str,
        kind_filter: Optional[ResourceKind] = None,
        *,
        privilege: Optional[str] = None,
        schema: Optional[str] = None,
        object_name: Optional[str] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> LineageReport:
        """Resolve every privilege a user holds and where it comes from.

        Args:
            user: Role to resolve.
            kind_filter: Restrict rows to schema, table or column resources.
            privilege: Restrict rows to one privilege (case-insensitive).
            schema: Restrict rows to one schema.
            object_name: Restrict rows to one table or other object.
            cancel_token: Optional token; on cancellation the call raises
                CancelledError and returns nothing.

        Returns:
            LineageReport with one row per (origin role, resource,
            privilege), sorted for auditing.

        Raises:
            UnknownRoleError: If user is not a known role.
            SourceUnavailableError: If the data source cannot be reached.
            MalformedEdgeError: In strict mode, on malformed membership data.
            TraversalLimitError: If the traversal bounds are exceeded.
            CancelledError: If the token is cancelled.
        """
        graph, collector = self.load_graph(cancel_token)
        return self._resolve(
            graph,
            collector,
            user,
            kind_filter,
            privilege=privilege,
            schema=schema,
            object_name=object_name,
            cancel_token=cancel_token,
        )

    def table_privileges(self, user: str, **kwargs) -> LineageReport:
        """Table-level privileges of a user (table privilege audit)."""
        return self.resolve_lineage(user, ResourceKind.TABLE, **kwargs)

    def schema_privileges(self, user: str, **kwargs) -> LineageReport:
        """Schema-level privileges of a user (schema privilege audit)."""
        return self.resolve_lineage(user, ResourceKind.SCHEMA, **kwargs)

    def column_privileges(self, user: str, **kwargs) -> LineageReport:
        """Column-level privileges of a user (column privilege audit)."""
        return self.resolve_lineage(user, ResourceKind.COLUMN, **kwargs)

    def membership_tree(
        self, user: str, cancel_token: Optional[CancelToken] = None
    ) -> LineageReport:
        """Every role the user belongs to, directly or through other roles.

        Every membership is followed even when honor_noinherit is set,
        because the tree shows membership, not privilege inheritance. The
        returned report has no rows.
        """
        graph, collector = self.load_graph(cancel_token)
        engine = TraversalEngine(graph, self.config)
        reachable = engine.reachable_roles(
            user, respect_inherit=False, cancel_token=cancel_token
        )
        return self._report(graph, collector, user, [], reachable, None)

    def find_inheritors(
        self, role: str, cancel_token: Optional[CancelToken] = None
    ) -> List[ReachableRole]:
        """Every role that inherits the privileges granted to a role.

        This is the reverse question of resolve_lineage: which roles are
        affected by a grant made to this role.
        """
        graph, _ = self.load_graph(cancel_token)
        engine = TraversalEngine(graph, self.config)
        return engine.inheritors(role, cancel_token=cancel_token)

    def resolve_many(
        self,
        users: Iterable[str],
        kind_filter: Optional[ResourceKind] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> Dict[str, LineageReport]:
        """Resolve several users in parallel.

        The membership graph is loaded once and shared read-only by the
        workers, so every report describes the same snapshot.

        Returns:
            Reports keyed by user, in the order the users were given.

        Raises:
            LineageError: The first error raised by any of the resolutions
                (UnknownRoleError, TraversalLimitError, CancelledError, ...).
        """
        names = list(dict.fromkeys(users))
        if not names:
            return {}
        graph, collector = self.load_graph(cancel_token)

        with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
            futures = {
                name: pool.submit(
                    self._resolve,
                    graph,
                    collector,
                    name,
                    kind_filter,
                    cancel_token=cancel_token,
                )
                for name in names
            }
            return {name: future.result() for name, future in futures.items()}

    def _resolve(
        self,
        graph: MembershipGraph,
        load_warnings: WarningCollector,
        user: str,
        kind_filter: Optional[ResourceKind],
        *,
        privilege: Optional[str] = None,
        schema: Optional[str] = None,
        object_name: Optional[str] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> LineageReport:
        engine = TraversalEngine(graph, self.config)
        reachable = engine.reachable_roles(user, cancel_token=cancel_token)

        collector = WarningCollector()
        collector.extend(load_warnings)
        loader = GraphLoader(self.source, self.config, collector)
        index = loader.load_grants(
            [role.role for role in reachable], kind_filter, cancel_token
        )

        rows = self._join(user, reachable, index, privilege, schema, object_name)
        return self._report(graph, collector, user, rows, reachable, kind_filter)

    @staticmethod
    def _join(
        user: str,
        reachable: List[ReachableRole],
        index: GrantIndex,
        privilege: Optional[str],
        schema: Optional[str],
        object_name: Optional[str],
    ) -> List[LineageRow]:
        wanted_privilege = privilege.upper() if privilege else None

        def matches(grant: Grant) -> bool:
            if wanted_privilege and grant.privilege != wanted_privilege:
                return False
            if schema and grant.resource.schema != schema:
                return False
            if object_name and grant.resource.object != object_name:
                return False
            return True

        rows = [
            LineageRow(
                user=user,
                privilege_from_role=role.role,
                resource=grant.resource,
                privilege=grant.privilege,
            )
            for role in reachable
            for grant in index.grants_for(role.role)
            if matches(grant)
        ]
        return sorted(rows, key=LineageRow.sort_key)

    def _report(
        self,
        graph: MembershipGraph,
        collector: WarningCollector,
        user: str,
        rows: List[LineageRow],
        reachable: List[ReachableRole],
        kind_filter: Optional[ResourceKind],
    ) -> LineageReport:
        return LineageReport(
            user=user,
            rows=rows,
            reachable_roles=reachable,
            kind_filter=kind_filter,
            edge_policy=self.config.on_malformed_edge,
            skipped_edges=list(graph.skipped_edges),
            warnings=collector.get_all(),
        )
