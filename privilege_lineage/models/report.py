"""
Lineage report model.

This module defines the LineageReport class, which represents the result of
resolving the privilege lineage of one user: the sorted lineage rows, the
roles that were reachable, and the diagnostics recorded on the way.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from privilege_lineage.models.config import ErrorMode
from privilege_lineage.models.grant import ResourceKind
from privilege_lineage.models.lineage import LineageRow, ReachableRole
from privilege_lineage.models.role import MembershipEdge
from privilege_lineage.utils.warnings import LineageWarning


@dataclass
class LineageReport:
    """Result of one privilege lineage resolution.

    Attributes:
        user: Role the lineage was resolved for.
        rows: Lineage rows, sorted by origin role, schema, object, column.
        reachable_roles: Roles reachable from the user, sorted by name.
        kind_filter: Resource kind the rows were restricted to, if any.
        edge_policy: Malformed edge policy in force for this resolution.
        skipped_edges: Membership edges skipped under the lenient policy.
        warnings: Diagnostics collected while loading and resolving.

    Example:
        >>> report = resolver.resolve_lineage("alice")
        >>> [row.privilege_from_role for row in report]
        ['reporting_group']
        >>> report.is_partial
        False
    """

    user: str
    rows: List[LineageRow] = field(default_factory=list)
    reachable_roles: List[ReachableRole] = field(default_factory=list)
    kind_filter: Optional[ResourceKind] = None
    edge_policy: ErrorMode = ErrorMode.WARN
    skipped_edges: List[MembershipEdge] = field(default_factory=list)
    warnings: List[LineageWarning] = field(default_factory=list)

    def __iter__(self) -> Iterator[LineageRow]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def is_partial(self) -> bool:
        """True if edges were skipped, so inherited rows may be missing."""
        return bool(self.skipped_edges)

    def source_roles(self) -> List[str]:
        """Distinct origin roles appearing in the rows, sorted."""
        return sorted({row.privilege_from_role for row in self.rows})

    def filter_by_kind(self, kind: ResourceKind) -> List[LineageRow]:
        """Return the rows for one resource kind, keeping order."""
        return [row for row in self.rows if row.kind == kind]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (for serialization)."""
        return {
            "user": self.user,
            "kind_filter": self.kind_filter.value if self.kind_filter else None,
            "edge_policy": self.edge_policy.value,
            "partial": self.is_partial,
            "skipped_edges": [
                {"member": edge.member, "group": edge.group}
                for edge in self.skipped_edges
            ],
            "reachable_roles": [role.to_dict() for role in self.reachable_roles],
            "rows": [row.to_dict() for row in self.rows],
            "warnings": [warning.to_dict() for warning in self.warnings],
        }

    def to_json(self, indent: int = 2) -> str:
        """Serialize to a JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)
