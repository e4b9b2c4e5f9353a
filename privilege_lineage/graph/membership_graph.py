"""
Membership graph for privilege lineage.

This module defines the MembershipGraph class, which uses networkx to store
the role-membership graph. Nodes are roles, and a directed edge
member -> group means the member inherits the group's privileges.
"""

from __future__ import annotations

from itertools import islice
from typing import Any, Optional

import networkx as nx

from privilege_lineage.models.role import MembershipEdge, Role

# Upper bound on the number of cycles find_cycles() lists
MAX_LISTED_CYCLES = 100


class MembershipGraph:
    """Directed role-membership graph.

    The graph only stores validated data: every edge joins two known roles
    and no edge points a role at itself. Validation happens in GraphLoader;
    add_membership() refuses edges that would break these rules.

    Attributes:
        graph: networkx DiGraph with one node per role (attributes
            "can_login" and "inherit") and one edge per membership
            (attributes "admin_option" and "inherit", None when the member's
            own flag applies).
        skipped_edges: Edges the loader dropped under the lenient policy.

    Example:
        >>> g = MembershipGraph()
        >>> g.add_role(Role("alice", can_login=True))
        >>> g.add_role(Role("reporting_group"))
        >>> g.add_membership(MembershipEdge("alice", "reporting_group"))
        >>> g.groups_of("alice")
        ['reporting_group']
    """

    def __init__(self) -> None:
        """Initialize an empty MembershipGraph."""
        self.graph = nx.DiGraph()
        self.skipped_edges: list[MembershipEdge] = []

    def __contains__(self, name: object) -> bool:
        return name in self.graph

    def __len__(self) -> int:
        return self.graph.number_of_nodes()

    def add_role(self, role: Role) -> None:
        """Add a role node, replacing the attributes of an existing one."""
        self.graph.add_node(
            role.name, can_login=role.can_login, inherit=role.inherit
        )

    def add_membership(self, edge: MembershipEdge) -> None:
        """Add a validated membership edge.

        Raises:
            ValueError: If either role is unknown or the edge is a self-edge.
        """
        if edge.is_self_edge:
            raise ValueError(f"self-membership edge {edge}")
        for name in (edge.member, edge.group):
            if name not in self.graph:
                raise ValueError(f"edge {edge} references unknown role '{name}'")
        self.graph.add_edge(
            edge.member,
            edge.group,
            admin_option=edge.admin_option,
            inherit=edge.inherit,
        )

    def has_role(self, name: str) -> bool:
        return name in self.graph

    def get_role(self, name: str) -> Optional[Role]:
        """Return the Role stored for a name, or None."""
        if name not in self.graph:
            return None
        data = self.graph.nodes[name]
        return Role(
            name,
            can_login=data.get("can_login", False),
            inherit=data.get("inherit", True),
        )

    def role_names(self) -> list[str]:
        """All role names, sorted."""
        return sorted(self.graph.nodes)

    def roles(self) -> list[Role]:
        """All roles, sorted by name."""
        return [self.get_role(name) for name in self.role_names()]

    def inherits(self, name: str) -> bool:
        """True if the role follows its memberships for privileges."""
        return bool(self.graph.nodes[name].get("inherit", True))

    def inherits_through(self, member: str, group: str) -> bool:
        """True if member uses the privileges of group through their edge.

        The membership's own inherit option wins; without one, the member
        role's inherit flag applies.
        """
        option = self.graph.edges[member, group].get("inherit")
        if option is not None:
            return bool(option)
        return self.inherits(member)

    def groups_of(self, name: str) -> list[str]:
        """Direct groups of a role, sorted by name."""
        if name not in self.graph:
            return []
        return sorted(self.graph.successors(name))

    def members_of(self, name: str) -> list[str]:
        """Direct members of a role, sorted by name."""
        if name not in self.graph:
            return []
        return sorted(self.graph.predecessors(name))

    def memberships(self) -> list[MembershipEdge]:
        """All edges, sorted by (member, group)."""
        return [
            MembershipEdge(
                u,
                v,
                admin_option=data.get("admin_option", False),
                inherit=data.get("inherit"),
            )
            for u, v, data in sorted(self.graph.edges(data=True))
        ]

    def find_cycles(
        self, max_length: Optional[int] = None, max_cycles: int = MAX_LISTED_CYCLES
    ) -> list[list[str]]:
        """Return elementary membership cycles, bounded in length and count.

        The number of elementary cycles grows exponentially on dense graphs,
        so at most max_cycles cycles of at most max_length roles are listed.
        Each cycle is rotated to start at its lexically smallest role, and
        the list is sorted, so the output is stable across runs.

        Args:
            max_length: Longest cycle to report, or None for no length bound.
            max_cycles: Maximum number of cycles to return.
        """
        cycles = []
        found = nx.simple_cycles(self.graph, length_bound=max_length)
        for cycle in islice(found, max_cycles):
            start = cycle.index(min(cycle))
            cycles.append(cycle[start:] + cycle[:start])
        return sorted(cycles)

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        """Export graph to dictionary format (JSON-serializable)."""
        return {
            "nodes": [
                {
                    "id": node,
                    "login": data.get("can_login", False),
                    "inherit": data.get("inherit", True),
                }
                for node, data in sorted(self.graph.nodes(data=True))
            ],
            "edges": [
                {
                    "member": u,
                    "group": v,
                    "admin_option": data.get("admin_option", False),
                    "inherit": data.get("inherit"),
                }
                for u, v, data in sorted(self.graph.edges(data=True))
            ],
        }

    def get_statistics(self) -> dict[str, Optional[int]]:
        """Get graph statistics.

        Returns:
            Dictionary with role, login role, group role and edge counts,
            the number of cyclic strongly connected components, and the
            longest membership chain (None when the graph has cycles).
        """
        login_roles = sum(
            1 for _, d in self.graph.nodes(data=True) if d.get("can_login")
        )
        is_dag = nx.is_directed_acyclic_graph(self.graph)
        return {
            "total_roles": self.graph.number_of_nodes(),
            "login_roles": login_roles,
            "group_roles": self.graph.number_of_nodes() - login_roles,
            "total_memberships": self.graph.number_of_edges(),
            "cyclic_components": 0 if is_dag else sum(
                1
                for component in nx.strongly_connected_components(self.graph)
                if len(component) > 1
            ),
            "max_depth": nx.dag_longest_path_length(self.graph) if is_dag else None,
        }

    def to_dot(self) -> str:
        """Export graph to Graphviz DOT format.

        Login roles are drawn as ellipses, group roles as boxes.
        """
        lines = ["digraph roles {", "  rankdir=BT;"]
        for node, data in sorted(self.graph.nodes(data=True)):
            shape = "ellipse" if data.get("can_login") else "box"
            lines.append(f'  "{_dot_escape(node)}" [shape={shape}];')
        for u, v, data in sorted(self.graph.edges(data=True)):
            style = ' [style=bold, label="admin"]' if data.get("admin_option") else ""
            lines.append(f'  "{_dot_escape(u)}" -> "{_dot_escape(v)}"{style};')
        lines.append("}")
        return "\n".join(lines)


def _dot_escape(name: str) -> str:
    return name.replace("\\", "\\\\").replace('"', '\\"')
