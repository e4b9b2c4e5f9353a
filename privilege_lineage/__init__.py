"""
Privilege Lineage Resolver v1.0

Answers "who gets what from where" for PostgreSQL-style role systems: every
privilege a user holds, directly or through nested role memberships, and
the role in the membership chain each privilege comes from.

Example:
    >>> from privilege_lineage import PrivilegeLineageResolver, ScriptRoleSource
    >>> source = ScriptRoleSource.from_string(grant_script)
    >>> resolver = PrivilegeLineageResolver(source)
    >>> report = resolver.resolve_lineage("bob")
    >>> [(row.privilege_from_role, row.privilege) for row in report]
"""

from privilege_lineage.version import __version__, __version_info__

__author__ = "Privilege Lineage Contributors"

from privilege_lineage.exceptions import (
    CancelledError,
    LineageError,
    MalformedEdgeError,
    ScriptParseError,
    SourceUnavailableError,
    TraversalLimitError,
    UnknownRoleError,
)
from privilege_lineage.graph.membership_graph import MembershipGraph
from privilege_lineage.loader.graph_loader import GrantIndex, GraphLoader
from privilege_lineage.models.config import ErrorMode, ResolverConfig
from privilege_lineage.models.grant import Grant, ResourceKind, ResourceRef
from privilege_lineage.models.lineage import LineageRow, ReachableRole
from privilege_lineage.models.report import LineageReport
from privilege_lineage.models.role import MembershipEdge, Role
from privilege_lineage.resolver.lineage_resolver import PrivilegeLineageResolver
from privilege_lineage.resolver.traversal import TraversalEngine
from privilege_lineage.source.catalog_source import CatalogRoleSource
from privilege_lineage.source.dict_source import DictRoleSource
from privilege_lineage.source.provider import RoleDataSource
from privilege_lineage.source.script_source import ScriptRoleSource
from privilege_lineage.utils.cancellation import CancelToken

__all__ = [
    # Version info
    "__version__",
    "__version_info__",
    # Core resolver
    "PrivilegeLineageResolver",
    "TraversalEngine",
    # Configuration
    "ResolverConfig",
    "ErrorMode",
    "CancelToken",
    # Results
    "LineageReport",
    "LineageRow",
    "ReachableRole",
    # Data models
    "Role",
    "MembershipEdge",
    "Grant",
    "ResourceRef",
    "ResourceKind",
    # Graph
    "MembershipGraph",
    "GraphLoader",
    "GrantIndex",
    # Sources
    "RoleDataSource",
    "DictRoleSource",
    "ScriptRoleSource",
    "CatalogRoleSource",
    # Exceptions
    "LineageError",
    "SourceUnavailableError",
    "UnknownRoleError",
    "MalformedEdgeError",
    "CancelledError",
    "TraversalLimitError",
    "ScriptParseError",
]
