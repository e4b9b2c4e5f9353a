"""
Graph loader module.

This package contains the GraphLoader class, which materializes role data
from a RoleDataSource, and the GrantIndex class.
"""

from privilege_lineage.loader.graph_loader import GrantIndex, GraphLoader

__all__ = [
    "GrantIndex",
    "GraphLoader",
]
