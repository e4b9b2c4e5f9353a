"""
Tests for DictRoleSource and JSON snapshots.
"""

import json
from pathlib import Path

import pytest

from privilege_lineage import (
    DictRoleSource,
    Grant,
    LineageError,
    MembershipEdge,
    ResourceKind,
    Role,
    SourceUnavailableError,
)


class TestDictRoleSource:
    """Tests for DictRoleSource."""

    def test_accepts_plain_data(self):
        source = DictRoleSource(
            roles=[
                "reporting_group",
                {"name": "alice", "login": True},
                Role("auditor", inherit=False),
            ],
            memberships=[
                ("alice", "reporting_group"),
                {"member": "auditor", "group": "reporting_group", "admin_option": True},
            ],
            grants=[
                ("reporting_group", "hr", "employees", None, "select"),
                {
                    "grantee": "auditor",
                    "schema": "hr",
                    "privilege": "USAGE",
                },
            ],
        )

        assert source.roles["alice"].can_login
        assert not source.roles["auditor"].inherit
        assert source.list_memberships()[1] == MembershipEdge(
            "auditor", "reporting_group", admin_option=True
        )
        assert [g.privilege for g in source.grants] == ["SELECT", "USAGE"]
        assert source.grants[1].kind == ResourceKind.SCHEMA

    def test_membership_inherit_option(self):
        source = DictRoleSource(
            memberships=[
                {"member": "alice", "group": "g", "inherit": False},
                {"member": "bob", "group": "g", "inherit": None},
                ("carol", "g"),
            ]
        )
        assert [e.inherit for e in source.list_memberships()] == [False, None, None]
        assert source.to_dict()["memberships"][0] == {
            "member": "alice",
            "group": "g",
            "admin_option": False,
            "inherit": False,
        }

    def test_roles_derived_when_omitted(self):
        source = DictRoleSource(
            memberships=[("alice", "reporting_group")],
            grants=[("auditor", "hr", None, None, "USAGE")],
        )
        assert sorted(r.name for r in source.list_roles()) == [
            "alice",
            "auditor",
            "reporting_group",
        ]

    def test_explicit_roles_keep_unknown_edges(self):
        source = DictRoleSource(
            roles=["alice"], memberships=[("alice", "ghost")]
        )
        assert [r.name for r in source.list_roles()] == ["alice"]
        assert len(source.list_memberships()) == 1

    def test_list_grants_filters(self):
        source = DictRoleSource(
            grants=[
                ("a", "hr", None, None, "USAGE"),
                ("a", "hr", "employees", None, "SELECT"),
                ("b", "hr", "employees", None, "DELETE"),
            ]
        )
        assert [g.privilege for g in source.list_grants(["a"])] == ["USAGE", "SELECT"]
        assert [
            g.privilege for g in source.list_grants(["a", "b"], ResourceKind.TABLE)
        ] == ["SELECT", "DELETE"]

    def test_list_memberships_returns_copy(self):
        source = DictRoleSource(memberships=[("alice", "reporting_group")])
        source.list_memberships().clear()
        assert len(source.memberships) == 1

    def test_bad_edge(self):
        with pytest.raises(TypeError, match="membership edge"):
            DictRoleSource(memberships=[("alice",)])

    def test_from_dict_invalid(self):
        with pytest.raises(LineageError, match="Invalid role snapshot"):
            DictRoleSource.from_dict({"grants": [{"grantee": "a"}]})
        with pytest.raises(LineageError, match="JSON object"):
            DictRoleSource.from_dict([])


class TestJsonSnapshot:
    """Tests for JSON snapshot files."""

    def setup_method(self):
        self.test_dir = Path("tests/test_data")
        self.test_dir.mkdir(exist_ok=True, parents=True)
        self.snapshot = self.test_dir / "snapshot_roundtrip.json"

    def teardown_method(self):
        if self.snapshot.exists():
            self.snapshot.unlink()

    def test_write_and_read(self):
        source = DictRoleSource(
            roles=[Role("alice", can_login=True), Role("reporting_group")],
            memberships=[("alice", "reporting_group")],
            grants=[
                Grant.from_row("reporting_group", "hr", "employees", "salary", "SELECT")
            ],
        )
        self.snapshot.write_text(source.to_json(), encoding="utf-8")

        loaded = DictRoleSource.from_json(self.snapshot)
        assert loaded.name == "json:snapshot_roundtrip.json"
        assert loaded.to_dict() == source.to_dict()
        assert loaded.roles["alice"].can_login

    def test_missing_file(self):
        with pytest.raises(SourceUnavailableError, match="Cannot read role snapshot"):
            DictRoleSource.from_json(self.test_dir / "does_not_exist.json")

    def test_invalid_json(self):
        self.snapshot.write_text("{not json", encoding="utf-8")
        with pytest.raises(LineageError, match="not valid JSON"):
            DictRoleSource.from_json(self.snapshot)

    def test_snapshot_format(self):
        self.snapshot.write_text(
            json.dumps(
                {
                    "roles": [{"name": "alice", "login": True}, {"name": "g"}],
                    "memberships": [{"member": "alice", "group": "g"}],
                    "grants": [
                        {
                            "grantee": "g",
                            "schema": "hr",
                            "object": "employees",
                            "column": None,
                            "privilege": "SELECT",
                        }
                    ],
                }
            ),
            encoding="utf-8",
        )
        source = DictRoleSource.from_json(self.snapshot)
        assert [str(e) for e in source.list_memberships()] == ["alice -> g"]
        assert source.list_grants(["g"])[0].kind == ResourceKind.TABLE
