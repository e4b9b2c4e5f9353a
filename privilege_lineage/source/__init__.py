"""
Role data source interfaces and implementations.

This package contains the abstract RoleDataSource interface and concrete
sources that read roles, memberships and grants from dictionaries and JSON
snapshots, GRANT scripts, or a live PostgreSQL catalog.
"""

from privilege_lineage.source.catalog_source import CatalogRoleSource
from privilege_lineage.source.dict_source import DictRoleSource
from privilege_lineage.source.provider import RoleDataSource
from privilege_lineage.source.script_source import ScriptRoleSource

__all__ = [
    "CatalogRoleSource",
    "DictRoleSource",
    "RoleDataSource",
    "ScriptRoleSource",
]
