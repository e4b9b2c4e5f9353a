"""
Data models for privilege lineage resolution.

This package contains the core data structures: roles and membership edges,
grants and resource references, derived lineage rows, reports and
configuration.
"""

from privilege_lineage.models.config import ErrorMode, ResolverConfig
from privilege_lineage.models.grant import Grant, ResourceKind, ResourceRef
from privilege_lineage.models.lineage import LineageRow, ReachableRole
from privilege_lineage.models.report import LineageReport
from privilege_lineage.models.role import MembershipEdge, Role

__all__ = [
    "ErrorMode",
    "Grant",
    "LineageReport",
    "LineageRow",
    "MembershipEdge",
    "ReachableRole",
    "ResolverConfig",
    "ResourceKind",
    "ResourceRef",
    "Role",
]
