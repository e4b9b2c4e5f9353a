"""
Resolver module for privilege lineage.

This module provides the traversal engine for membership closure and the
resolver that joins reachable roles against their grants.
"""

from privilege_lineage.resolver.lineage_resolver import PrivilegeLineageResolver
from privilege_lineage.resolver.traversal import TraversalEngine

__all__ = ["PrivilegeLineageResolver", "TraversalEngine"]
