"""
PostgreSQL catalog role data source.

This module defines the CatalogRoleSource class, which reads roles, role
memberships and privileges directly from the system catalogs of a running
PostgreSQL database over a SQLAlchemy engine. ACLs are expanded with
aclexplode() so that grants not visible through information_schema (which
only shows objects the current user can see) are still reported.
"""

from typing import Any, Iterable, List, Optional, Union

import sqlalchemy as sa

from privilege_lineage.exceptions import CancelledError, SourceUnavailableError
from privilege_lineage.models.grant import Grant, ResourceKind
from privilege_lineage.models.role import MembershipEdge, Role
from privilege_lineage.source.provider import RoleDataSource
from privilege_lineage.utils.cancellation import CancelToken, check_cancelled

_SYSTEM_ROLE_FILTER = "rolname !~ '^pg_'"

_ROLES_SQL = """
SELECT rolname, rolcanlogin, rolinherit
FROM pg_roles
{where}
ORDER BY rolname
"""

# pg_auth_members.inherit_option exists from PostgreSQL 16 on; reading it
# through to_jsonb yields NULL on older servers instead of failing.
_MEMBERSHIPS_SQL = """
SELECT members.rolname AS member, groups.rolname AS group_name, m.admin_option,
       (to_jsonb(m) ->> 'inherit_option')::boolean AS inherit_option
FROM pg_auth_members m
INNER JOIN pg_roles groups ON groups.oid = m.roleid
INNER JOIN pg_roles members ON members.oid = m.member
{where}
ORDER BY members.rolname, groups.rolname
"""

_SCHEMA_GRANTS_SQL = """
SELECT grantee.rolname, n.nspname, NULL, NULL, acl.privilege_type
FROM pg_namespace n
CROSS JOIN LATERAL aclexplode(COALESCE(n.nspacl, acldefault('n', n.nspowner))) AS acl
INNER JOIN pg_roles grantee ON grantee.oid = acl.grantee
WHERE grantee.rolname IN :grantees
  AND n.nspname NOT IN ('pg_catalog', 'information_schema')
  AND n.nspname NOT LIKE 'pg\\_toast%'
  AND n.nspname NOT LIKE 'pg\\_temp\\_%'
"""

_TABLE_GRANTS_SQL = """
SELECT grantee.rolname, n.nspname, c.relname, NULL, acl.privilege_type
FROM pg_class c
INNER JOIN pg_namespace n ON n.oid = c.relnamespace
CROSS JOIN LATERAL aclexplode(COALESCE(c.relacl, acldefault('r', c.relowner))) AS acl
INNER JOIN pg_roles grantee ON grantee.oid = acl.grantee
WHERE grantee.rolname IN :grantees
  AND c.relkind IN ('r', 'v', 'm', 'f', 'p')
  AND n.nspname NOT IN ('pg_catalog', 'information_schema')
"""

_COLUMN_GRANTS_SQL = """
SELECT grantee.rolname, n.nspname, c.relname, a.attname, acl.privilege_type
FROM pg_attribute a
INNER JOIN pg_class c ON c.oid = a.attrelid
INNER JOIN pg_namespace n ON n.oid = c.relnamespace
CROSS JOIN LATERAL aclexplode(a.attacl) AS acl
INNER JOIN pg_roles grantee ON grantee.oid = acl.grantee
WHERE grantee.rolname IN :grantees
  AND a.attacl IS NOT NULL
  AND a.attnum > 0
  AND NOT a.attisdropped
  AND n.nspname NOT IN ('pg_catalog', 'information_schema')
"""

GRANT_QUERIES = {
    ResourceKind.SCHEMA: _SCHEMA_GRANTS_SQL,
    ResourceKind.TABLE: _TABLE_GRANTS_SQL,
    ResourceKind.COLUMN: _COLUMN_GRANTS_SQL,
}


class CatalogRoleSource(RoleDataSource):
    """Role data source reading a live PostgreSQL catalog.

    Each call opens its own connection from the engine's pool, so one
    source can serve concurrent resolutions. A CancelToken's remaining time
    is applied as a transaction-local statement_timeout.

    Attributes:
        engine: SQLAlchemy engine used to connect.
        include_system_roles: If True, the built-in pg_* roles are included.

    Example:
        >>> source = CatalogRoleSource("postgresql+psycopg://auditor@db/app")
        >>> resolver = PrivilegeLineageResolver(source)
        >>> report = resolver.resolve_lineage("alice")
    """

    name = "catalog"

    def __init__(
        self,
        engine: Union[sa.engine.Engine, str],
        include_system_roles: bool = False,
    ) -> None:
        if isinstance(engine, str):
            try:
                engine = sa.create_engine(engine)
            except sa.exc.ArgumentError as e:
                raise SourceUnavailableError(
                    f"Invalid database URL: {e}", source=self.name
                ) from e
        self.engine = engine
        self.include_system_roles = include_system_roles

    def describe(self) -> str:
        url = getattr(self.engine, "url", None)
        if url is None:
            return self.name
        return f"{self.name}:{url.render_as_string(hide_password=True)}"

    def list_roles(
        self, cancel_token: Optional[CancelToken] = None
    ) -> List[Role]:
        where = "" if self.include_system_roles else f"WHERE {_SYSTEM_ROLE_FILTER}"
        rows = self._fetch(sa.text(_ROLES_SQL.format(where=where)), {}, cancel_token)
        return [
            Role(name, can_login=bool(login), inherit=bool(inherit))
            for name, login, inherit in rows
        ]

    def list_memberships(
        self, cancel_token: Optional[CancelToken] = None
    ) -> List[MembershipEdge]:
        where = (
            ""
            if self.include_system_roles
            else "WHERE members.rolname !~ '^pg_' AND groups.rolname !~ '^pg_'"
        )
        rows = self._fetch(
            sa.text(_MEMBERSHIPS_SQL.format(where=where)), {}, cancel_token
        )
        return [
            MembershipEdge(
                member,
                group,
                admin_option=bool(admin),
                inherit=None if inherit is None else bool(inherit),
            )
            for member, group, admin, inherit in rows
        ]

    def list_grants(
        self,
        grantees: Iterable[str],
        kind_filter: Optional[ResourceKind] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> List[Grant]:
        names = sorted(set(grantees))
        if not names:
            return []

        kinds = [kind_filter] if kind_filter is not None else list(GRANT_QUERIES)
        grants: List[Grant] = []
        for kind in kinds:
            statement = sa.text(GRANT_QUERIES[kind]).bindparams(
                sa.bindparam("grantees", expanding=True)
            )
            rows = self._fetch(statement, {"grantees": names}, cancel_token)
            grants.extend(Grant.from_row(*row) for row in rows)
        return grants

    def _fetch(
        self,
        statement: sa.TextClause,
        params: dict[str, Any],
        cancel_token: Optional[CancelToken],
    ) -> List[tuple]:
        check_cancelled(cancel_token)
        try:
            with self.engine.connect() as conn:
                self._apply_timeout(conn, cancel_token)
                result = conn.execute(statement, params)
                return [tuple(row) for row in result]
        except sa.exc.DBAPIError as e:
            if cancel_token is not None and cancel_token.cancelled:
                raise CancelledError(
                    "Resolution cancelled while querying the catalog"
                ) from e
            raise SourceUnavailableError(
                f"Catalog query failed: {e.orig or e}", source=self.describe()
            ) from e

    @staticmethod
    def _apply_timeout(
        conn: sa.engine.Connection, cancel_token: Optional[CancelToken]
    ) -> None:
        remaining = cancel_token.remaining() if cancel_token else None
        if remaining is None:
            return
        milliseconds = max(1, int(remaining * 1000))
        conn.execute(
            sa.text("SELECT set_config('statement_timeout', :timeout, true)"),
            {"timeout": str(milliseconds)},
        )
