"""
Tests for PrivilegeLineageResolver.

This module contains end-to-end tests of lineage resolution over in-memory
role data: direct and inherited grants, projections, filters, diamonds,
cycles and batch resolution.
"""

import pytest

from privilege_lineage import (
    CancelledError,
    CancelToken,
    DictRoleSource,
    ErrorMode,
    MalformedEdgeError,
    PrivilegeLineageResolver,
    ResolverConfig,
    ResourceKind,
    ResourceRef,
    Role,
    UnknownRoleError,
)


def row_tuples(report):
    return [
        (r.privilege_from_role, r.schema, r.object, r.column, r.privilege)
        for r in report
    ]


class TestResolveLineage:
    """Tests for resolve_lineage on the reporting/finance example."""

    def setup_method(self):
        self.source = DictRoleSource(
            roles=[
                Role("alice", can_login=True),
                Role("bob", can_login=True),
                Role("carol", can_login=True),
                Role("finance_group"),
                Role("reporting_group"),
            ],
            memberships=[
                ("alice", "reporting_group"),
                ("finance_group", "reporting_group"),
                ("bob", "finance_group"),
            ],
            grants=[
                ("reporting_group", "hr", "employees", None, "SELECT"),
                ("reporting_group", "hr", None, None, "USAGE"),
                ("finance_group", "hr", "employees", "salary", "UPDATE"),
                ("bob", "public", "notes", None, "INSERT"),
            ],
        )
        self.resolver = PrivilegeLineageResolver(self.source)

    def test_single_hop(self):
        report = self.resolver.resolve_lineage("alice", ResourceKind.TABLE)
        assert row_tuples(report) == [
            ("reporting_group", "hr", "employees", None, "SELECT"),
        ]

    def test_two_hop_inheritance(self):
        report = self.resolver.resolve_lineage("bob")
        assert row_tuples(report) == [
            ("bob", "public", "notes", None, "INSERT"),
            ("finance_group", "hr", "employees", "salary", "UPDATE"),
            ("reporting_group", "hr", None, None, "USAGE"),
            ("reporting_group", "hr", "employees", None, "SELECT"),
        ]
        assert all(row.user == "bob" for row in report)
        assert [row.is_inherited for row in report] == [False, True, True, True]

    def test_reachable_roles_reported(self):
        report = self.resolver.resolve_lineage("bob")
        assert [r.role for r in report.reachable_roles] == [
            "bob",
            "finance_group",
            "reporting_group",
        ]

    def test_no_grants(self):
        report = self.resolver.resolve_lineage("carol")
        assert len(report) == 0
        assert [r.role for r in report.reachable_roles] == ["carol"]

    def test_unknown_user(self):
        with pytest.raises(UnknownRoleError, match="'dave' does not exist"):
            self.resolver.resolve_lineage("dave")

    def test_idempotent(self):
        first = self.resolver.resolve_lineage("bob").to_dict()
        second = self.resolver.resolve_lineage("bob").to_dict()
        assert first == second

    def test_projections_partition_full_lineage(self):
        full = self.resolver.resolve_lineage("bob")
        tables = self.resolver.table_privileges("bob")
        schemas = self.resolver.schema_privileges("bob")
        columns = self.resolver.column_privileges("bob")

        assert tables.kind_filter == ResourceKind.TABLE
        assert all(row.kind == ResourceKind.TABLE for row in tables)
        assert all(row.kind == ResourceKind.SCHEMA for row in schemas)
        assert all(row.kind == ResourceKind.COLUMN for row in columns)

        union = set(tables.rows) | set(schemas.rows) | set(columns.rows)
        assert union == set(full.rows)
        assert len(tables) + len(schemas) + len(columns) == len(full)

    def test_privilege_filter_case_insensitive(self):
        report = self.resolver.resolve_lineage("bob", privilege="select")
        assert row_tuples(report) == [
            ("reporting_group", "hr", "employees", None, "SELECT"),
        ]

    def test_schema_and_object_filters(self):
        report = self.resolver.resolve_lineage("bob", schema="public")
        assert [r.object for r in report] == ["notes"]

        report = self.resolver.table_privileges("bob", object_name="employees")
        assert row_tuples(report) == [
            ("reporting_group", "hr", "employees", None, "SELECT"),
        ]

    def test_report_not_partial(self):
        report = self.resolver.resolve_lineage("bob")
        assert not report.is_partial
        assert report.edge_policy == ErrorMode.WARN


class TestInheritanceShapes:
    """Diamonds, cycles and NOINHERIT roles."""

    def test_diamond_keeps_one_row_per_origin(self):
        source = DictRoleSource(
            memberships=[
                ("u", "left"),
                ("u", "right"),
                ("left", "top"),
                ("right", "top"),
            ],
            grants=[
                ("top", "hr", "employees", None, "SELECT"),
                ("left", "hr", "employees", None, "SELECT"),
            ],
        )
        report = PrivilegeLineageResolver(source).resolve_lineage("u")
        assert row_tuples(report) == [
            ("left", "hr", "employees", None, "SELECT"),
            ("top", "hr", "employees", None, "SELECT"),
        ]

    def test_cycle_terminates_without_duplicates(self):
        source = DictRoleSource(
            memberships=[("a", "b"), ("b", "a")],
            grants=[
                ("a", "hr", None, None, "USAGE"),
                ("b", "hr", "employees", None, "SELECT"),
            ],
        )
        resolver = PrivilegeLineageResolver(source)
        report_a = resolver.resolve_lineage("a")
        report_b = resolver.resolve_lineage("b")

        assert row_tuples(report_a) == row_tuples(report_b)
        assert len(report_a) == 2

    def test_noinherit_user_keeps_direct_grants_only(self):
        source = DictRoleSource(
            roles=[Role("auditor", can_login=True, inherit=False), "reporting_group"],
            memberships=[("auditor", "reporting_group")],
            grants=[
                ("reporting_group", "hr", "employees", None, "SELECT"),
                ("auditor", "audit", None, None, "USAGE"),
            ],
        )
        resolver = PrivilegeLineageResolver(
            source, ResolverConfig(honor_noinherit=True)
        )

        report = resolver.resolve_lineage("auditor")
        assert row_tuples(report) == [("auditor", "audit", None, None, "USAGE")]

        tree = resolver.membership_tree("auditor")
        assert len(tree) == 0
        assert [r.role for r in tree.reachable_roles] == ["auditor", "reporting_group"]


    def test_noinherit_followed_by_default(self):
        source = DictRoleSource(
            roles=[Role("alice", can_login=True, inherit=False), "reporting_group"],
            memberships=[("alice", "reporting_group")],
            grants=[("reporting_group", "hr", "employees", None, "SELECT")],
        )
        report = PrivilegeLineageResolver(source).resolve_lineage("alice")
        assert row_tuples(report) == [
            ("reporting_group", "hr", "employees", None, "SELECT"),
        ]

    def test_membership_inherit_option_when_honored(self):
        source = DictRoleSource(
            roles=[
                Role("alice", can_login=True, inherit=False),
                Role("bob", can_login=True),
                "reporting_group",
            ],
            memberships=[
                {"member": "alice", "group": "reporting_group", "inherit": True},
                {"member": "bob", "group": "reporting_group", "inherit": False},
            ],
            grants=[("reporting_group", "hr", "employees", None, "SELECT")],
        )
        resolver = PrivilegeLineageResolver(
            source, ResolverConfig(honor_noinherit=True)
        )
        assert len(resolver.resolve_lineage("alice")) == 1
        assert len(resolver.resolve_lineage("bob")) == 0
        assert [r.role for r in resolver.find_inheritors("reporting_group")] == [
            "alice"
        ]


class TestSingleHopExample:
    """One login role, one group, one table grant."""

    def setup_method(self):
        source = DictRoleSource(
            roles=[Role("alice", can_login=True), Role("reporting_group")],
            memberships=[("alice", "reporting_group")],
            grants=[("reporting_group", "hr", "employees", None, "SELECT")],
        )
        self.resolver = PrivilegeLineageResolver(source)

    def test_unfiltered_lineage_has_exactly_one_row(self):
        report = self.resolver.resolve_lineage("alice")
        assert len(report) == 1
        row = report.rows[0]
        assert row.user == "alice"
        assert row.privilege_from_role == "reporting_group"
        assert (row.schema, row.object, row.column) == ("hr", "employees", None)
        assert row.privilege == "SELECT"
        assert row.is_inherited

    def test_group_holds_grant_directly(self):
        report = self.resolver.resolve_lineage("reporting_group")
        assert row_tuples(report) == [
            ("reporting_group", "hr", "employees", None, "SELECT"),
        ]
        assert not report.rows[0].is_inherited


class TestMalformedData:
    """Edge policy reflected in reports."""

    def setup_method(self):
        self.source = DictRoleSource(
            roles=["alice", "reporting_group"],
            memberships=[("alice", "reporting_group"), ("alice", "ghost")],
            grants=[("reporting_group", "hr", "employees", None, "SELECT")],
        )

    def test_lenient_report_is_partial(self):
        resolver = PrivilegeLineageResolver(self.source)
        with pytest.warns(UserWarning):
            report = resolver.resolve_lineage("alice")

        assert len(report) == 1
        assert report.is_partial
        assert [str(e) for e in report.skipped_edges] == ["alice -> ghost"]
        assert report.warnings[0].context == "alice -> ghost"
        assert report.to_dict()["partial"] is True

    def test_strict_fails_whole_resolution(self):
        resolver = PrivilegeLineageResolver(
            self.source, ResolverConfig(on_malformed_edge=ErrorMode.FAIL)
        )
        with pytest.raises(MalformedEdgeError):
            resolver.resolve_lineage("alice")


class TestResolverQueries:
    """membership_tree, find_inheritors, resolve_many and cancellation."""

    def setup_method(self):
        self.source = DictRoleSource(
            memberships=[
                ("alice", "reporting_group"),
                ("finance_group", "reporting_group"),
                ("bob", "finance_group"),
            ],
            grants=[("reporting_group", "hr", "employees", None, "SELECT")],
        )
        self.resolver = PrivilegeLineageResolver(
            self.source, ResolverConfig(max_workers=2)
        )

    def test_membership_tree(self):
        tree = self.resolver.membership_tree("bob")
        assert tree.user == "bob"
        assert tree.rows == []
        paths = {r.role: r.path_string() for r in tree.reachable_roles}
        assert paths["reporting_group"] == "bob -> finance_group -> reporting_group"

    def test_find_inheritors(self):
        inheritors = self.resolver.find_inheritors("reporting_group")
        assert [r.role for r in inheritors] == ["alice", "bob", "finance_group"]

    def test_resolve_many(self):
        reports = self.resolver.resolve_many(["bob", "alice", "bob"])
        assert list(reports) == ["bob", "alice"]
        for user, report in reports.items():
            assert report.user == user
            assert [r.privilege_from_role for r in report] == ["reporting_group"]

    def test_resolve_many_empty(self):
        assert self.resolver.resolve_many([]) == {}

    def test_resolve_many_unknown_user(self):
        with pytest.raises(UnknownRoleError):
            self.resolver.resolve_many(["alice", "nobody"])

    def test_cancelled(self):
        token = CancelToken()
        token.cancel()
        with pytest.raises(CancelledError):
            self.resolver.resolve_lineage("bob", cancel_token=token)

    def test_rows_match_resource_refs(self):
        report = self.resolver.table_privileges("alice")
        assert report.rows[0].resource == ResourceRef("hr", "employees")
