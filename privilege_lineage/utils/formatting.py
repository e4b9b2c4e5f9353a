"""
Tabular rendering of lineage reports.

This module renders LineageReport objects as tables (via tabulate) for the
console or for file export. Each audit view has its own column set:

    lineage  user | privilege_from_role | schema | object | column | privilege
    tables   user | privilege_from_role | schema | object | privilege
    schemas  user | privilege_from_role | schema | privilege
    columns  user | privilege_from_role | schema | object | column | privilege
    tree     role | via | depth | path
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from tabulate import tabulate

from privilege_lineage.models.grant import ResourceKind
from privilege_lineage.models.lineage import LineageRow, ReachableRole
from privilege_lineage.models.report import LineageReport
from privilege_lineage.models.role import Role

VIEW_COLUMNS: Dict[str, List[str]] = {
    "lineage": ["user", "privilege_from_role", "schema", "object", "column", "privilege"],
    "tables": ["user", "privilege_from_role", "schema", "object", "privilege"],
    "schemas": ["user", "privilege_from_role", "schema", "privilege"],
    "columns": ["user", "privilege_from_role", "schema", "object", "column", "privilege"],
    "tree": ["role", "via", "depth", "path"],
}

# Resource kind each privilege view is restricted to
VIEW_KINDS: Dict[str, Optional[ResourceKind]] = {
    "lineage": None,
    "tables": ResourceKind.TABLE,
    "schemas": ResourceKind.SCHEMA,
    "columns": ResourceKind.COLUMN,
}


def row_values(row: LineageRow, columns: Sequence[str]) -> List[Any]:
    """Pick the given columns out of a lineage row."""
    data = row.to_dict()
    return [data[column] for column in columns]


def render_report(
    report: LineageReport, view: str = "lineage", tablefmt: str = "simple"
) -> str:
    """Render a report as a table for one audit view.

    Args:
        report: Report to render.
        view: One of "lineage", "tables", "schemas", "columns", "tree".
        tablefmt: Any tabulate format ("simple", "github", "plain", ...).

    Returns:
        The table as a string. An empty report renders as a one-line note.

    Raises:
        ValueError: If view is unknown.
    """
    if view not in VIEW_COLUMNS:
        raise ValueError(
            f"Unknown view '{view}'. Expected one of {sorted(VIEW_COLUMNS)}"
        )
    if view == "tree":
        return render_reachable_roles(report.reachable_roles, tablefmt)

    columns = VIEW_COLUMNS[view]
    kind = VIEW_KINDS[view]
    rows = report.rows if kind is None else report.filter_by_kind(kind)
    if not rows:
        return f"(no privileges found for '{report.user}')"
    return tabulate(
        [row_values(row, columns) for row in rows],
        headers=columns,
        tablefmt=tablefmt,
        missingval="",
    )


def render_reachable_roles(
    reachable: Sequence[ReachableRole], tablefmt: str = "simple"
) -> str:
    """Render reachable roles as a role | via | depth | path table."""
    return tabulate(
        [
            [role.role, role.via, role.depth, role.path_string()]
            for role in reachable
        ],
        headers=VIEW_COLUMNS["tree"],
        tablefmt=tablefmt,
        missingval="",
    )


def render_membership_tree(
    reachable: Sequence[ReachableRole], use_ascii: bool = True
) -> str:
    """Render reachable roles as an indented tree rooted at the start role.

    Example:
        bob
        +-- finance_group
            +-- reporting_group
    """
    if not reachable:
        return ""
    children: Dict[Optional[str], List[str]] = {}
    for role in reachable:
        children.setdefault(role.via, []).append(role.role)
    for names in children.values():
        names.sort()

    branch = "+-- " if use_ascii else "└── "
    lines: List[str] = []
    stack = [(root, 0) for root in reversed(children.get(None, []))]
    while stack:
        name, level = stack.pop()
        prefix = "    " * (level - 1) + branch if level else ""
        lines.append(f"{prefix}{name}")
        for child in reversed(children.get(name, [])):
            stack.append((child, level + 1))
    return "\n".join(lines)


def render_roles(
    roles: Sequence[Role],
    groups: Dict[str, List[str]],
    tablefmt: str = "simple",
) -> str:
    """Render the role list with each role's direct groups."""
    return tabulate(
        [
            [
                role.name,
                "yes" if role.can_login else "no",
                "yes" if role.inherit else "no",
                ", ".join(groups.get(role.name, [])),
            ]
            for role in roles
        ],
        headers=["role", "login", "inherit", "member_of"],
        tablefmt=tablefmt,
    )
