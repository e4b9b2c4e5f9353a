"""
Tests for report formatting.
"""

import pytest

from privilege_lineage import (
    DictRoleSource,
    LineageReport,
    PrivilegeLineageResolver,
    ReachableRole,
    Role,
)
from privilege_lineage.utils.formatting import (
    VIEW_COLUMNS,
    render_membership_tree,
    render_report,
    render_roles,
)


class TestRenderReport:
    """Tests for render_report."""

    def setup_method(self):
        source = DictRoleSource(
            memberships=[
                ("alice", "reporting_group"),
                ("finance_group", "reporting_group"),
                ("bob", "finance_group"),
            ],
            grants=[
                ("reporting_group", "hr", "employees", None, "SELECT"),
                ("reporting_group", "hr", None, None, "USAGE"),
                ("finance_group", "hr", "employees", "salary", "UPDATE"),
            ],
        )
        self.report = PrivilegeLineageResolver(source).resolve_lineage("bob")

    def test_lineage_view(self):
        text = render_report(self.report)
        header = text.splitlines()[0].split()
        assert header == VIEW_COLUMNS["lineage"]
        assert "finance_group" in text
        assert "salary" in text

    def test_tables_view_only_tables(self):
        text = render_report(self.report, "tables")
        assert "SELECT" in text
        assert "USAGE" not in text
        assert "UPDATE" not in text
        assert "column" not in text.splitlines()[0]

    def test_schemas_view(self):
        lines = render_report(self.report, "schemas", "plain").splitlines()
        assert lines[1].split() == ["bob", "reporting_group", "hr", "USAGE"]

    def test_github_format(self):
        text = render_report(self.report, "columns", "github")
        assert text.startswith("| user")

    def test_tree_view(self):
        text = render_report(self.report, "tree")
        assert "bob -> finance_group -> reporting_group" in text

    def test_empty(self):
        report = LineageReport(user="carol")
        assert render_report(report) == "(no privileges found for 'carol')"

    def test_unknown_view(self):
        with pytest.raises(ValueError, match="Unknown view 'grid'"):
            render_report(self.report, "grid")


class TestRenderTree:
    """Tests for render_membership_tree and render_roles."""

    def test_membership_tree(self):
        reachable = [
            ReachableRole("bob", path=("bob",)),
            ReachableRole("finance_group", "bob", 1, ("bob", "finance_group")),
            ReachableRole("ops_group", "bob", 1, ("bob", "ops_group")),
            ReachableRole(
                "reporting_group",
                "finance_group",
                2,
                ("bob", "finance_group", "reporting_group"),
            ),
        ]
        assert render_membership_tree(reachable).splitlines() == [
            "bob",
            "+-- finance_group",
            "    +-- reporting_group",
            "+-- ops_group",
        ]
        assert "└── " in render_membership_tree(reachable, use_ascii=False)

    def test_empty_tree(self):
        assert render_membership_tree([]) == ""

    def test_render_roles(self):
        text = render_roles(
            [Role("alice", can_login=True), Role("reporting_group")],
            {"alice": ["reporting_group"]},
            "plain",
        )
        lines = text.splitlines()
        assert lines[0].split() == ["role", "login", "inherit", "member_of"]
        assert lines[1].split() == ["alice", "yes", "yes", "reporting_group"]
        assert lines[2].split() == ["reporting_group", "no", "yes"]
