"""
Membership graph module.

This package contains the graph-based representation of role memberships,
the MembershipGraph class, used for traversal, diagnostics and export.
"""

from privilege_lineage.graph.membership_graph import MembershipGraph

__all__ = [
    "MembershipGraph",
]
