"""
Tests for CLI functionality (end-to-end).

This module contains tests for the command-line interface, testing
actual CLI commands and their output.
"""

import json
import os
import subprocess
import sys
from pathlib import Path


class TestCLI:
    """Test CLI functionality (end-to-end)."""

    def setup_method(self):
        """Create test role files."""
        self.test_dir = Path("tests/test_data")
        self.test_dir.mkdir(exist_ok=True, parents=True)

        # Create GRANT script
        self.script_file = self.test_dir / "cli_roles.sql"
        self.script_file.write_text(
            """
        CREATE ROLE reporting_group NOLOGIN;
        CREATE ROLE finance_group NOLOGIN;
        CREATE ROLE alice LOGIN;
        CREATE ROLE bob LOGIN;
        GRANT reporting_group TO alice;
        GRANT reporting_group TO finance_group;
        GRANT finance_group TO bob;
        GRANT USAGE ON SCHEMA hr TO reporting_group;
        GRANT SELECT ON hr.employees TO reporting_group;
        GRANT UPDATE (salary) ON hr.employees TO finance_group;
        """
        )

        # Create JSON snapshot with a dangling edge
        self.snapshot_file = self.test_dir / "cli_snapshot.json"
        self.snapshot_file.write_text(
            json.dumps(
                {
                    "roles": [
                        {"name": "alice", "login": True},
                        {"name": "reporting_group"},
                    ],
                    "memberships": [
                        {"member": "alice", "group": "reporting_group"},
                        {"member": "alice", "group": "ghost"},
                    ],
                    "grants": [
                        {
                            "grantee": "reporting_group",
                            "schema": "hr",
                            "object": "employees",
                            "privilege": "SELECT",
                        }
                    ],
                }
            )
        )

        self.output_files = []

    def teardown_method(self):
        """Clean up test files."""
        for path in [self.script_file, self.snapshot_file, *self.output_files]:
            if path.exists():
                path.unlink()

    def run_cli(self, *args):
        """Run CLI command."""
        # Set UTF-8 encoding for Windows compatibility
        env = dict(os.environ)
        env["PYTHONIOENCODING"] = "utf-8"
        cmd = [sys.executable, "-m", "privilege_lineage.cli"] + list(args)
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            cwd=Path.cwd(),
            env=env,
        )
        return result

    def test_lineage(self):
        """Test default lineage view."""
        result = self.run_cli(str(self.script_file), "--user", "bob")

        assert result.returncode == 0
        assert "Found 3 privilege(s) for 'bob'" in result.stdout
        assert "finance_group" in result.stdout
        assert "reporting_group" in result.stdout
        assert "lenient" in result.stdout

    def test_tables_view(self):
        """Test --view tables."""
        result = self.run_cli(
            str(self.script_file), "--user", "alice", "--view", "tables"
        )

        assert result.returncode == 0
        assert "SELECT" in result.stdout
        assert "USAGE" not in result.stdout

    def test_tree_view(self):
        """Test --view tree."""
        result = self.run_cli(
            str(self.script_file), "-u", "bob", "-v", "tree", "--no-color"
        )

        assert result.returncode == 0
        assert "+-- finance_group" in result.stdout
        assert "    +-- reporting_group" in result.stdout

    def test_json_output(self):
        """Test --format json."""
        result = self.run_cli(
            str(self.script_file), "--user", "bob", "--format", "json"
        )

        assert result.returncode == 0
        data = json.loads(result.stdout)
        assert data["user"] == "bob"
        assert data["edge_policy"] == "warn"
        assert [row["privilege_from_role"] for row in data["rows"]] == [
            "finance_group",
            "reporting_group",
            "reporting_group",
        ]

    def test_privilege_filter(self):
        """Test --privilege filter."""
        result = self.run_cli(
            str(self.script_file),
            "--user",
            "bob",
            "--privilege",
            "update",
            "--format",
            "json",
        )

        assert result.returncode == 0
        rows = json.loads(result.stdout)["rows"]
        assert [(r["column"], r["privilege"]) for r in rows] == [("salary", "UPDATE")]

    def test_lenient_snapshot(self):
        """Dangling edges are skipped and reported."""
        result = self.run_cli(str(self.snapshot_file), "--user", "alice")

        assert result.returncode == 0
        assert "skipped" in result.stdout
        assert "alice -> ghost" in result.stdout

    def test_strict_snapshot(self):
        """--strict fails on dangling edges."""
        result = self.run_cli(str(self.snapshot_file), "--user", "alice", "--strict")

        assert result.returncode == 1
        assert "ghost" in result.stderr

    def test_unknown_user(self):
        """Unknown users fail with a suggestion."""
        result = self.run_cli(str(self.script_file), "--user", "alcie")

        assert result.returncode == 1
        assert "does not exist" in result.stderr
        assert "alice" in result.stderr

    def test_missing_file(self):
        """Test with missing input file."""
        result = self.run_cli("tests/test_data/nonexistent.sql", "--user", "bob")

        assert result.returncode == 1
        assert "Cannot read GRANT script" in result.stderr

    def test_unknown_extension(self):
        """Sources with unknown extensions need --source-type."""
        result = self.run_cli("roles.txt", "--user", "bob")

        assert result.returncode == 1
        assert "--source-type" in result.stderr

    def test_requires_a_command(self):
        """One command option is required."""
        result = self.run_cli(str(self.script_file))

        assert result.returncode == 2

    def test_commands_mutually_exclusive(self):
        """Only one command per run, so --format json prints one document."""
        result = self.run_cli(
            str(self.script_file), "--user", "bob", "--list-roles", "--format", "json"
        )

        assert result.returncode == 2
        assert "not allowed with argument" in result.stderr
        assert result.stdout == ""

    def test_honor_noinherit(self):
        """NOINHERIT is followed unless --honor-noinherit is given."""
        script = self.test_dir / "cli_noinherit.sql"
        self.output_files.append(script)
        script.write_text(
            """
        CREATE ROLE reporting_group NOLOGIN;
        CREATE ROLE auditor LOGIN NOINHERIT;
        GRANT reporting_group TO auditor;
        GRANT SELECT ON hr.employees TO reporting_group;
        """
        )

        result = self.run_cli(str(script), "--user", "auditor", "--format", "json")
        assert result.returncode == 0
        assert len(json.loads(result.stdout)["rows"]) == 1

        result = self.run_cli(
            str(script), "--user", "auditor", "--format", "json", "--honor-noinherit"
        )
        assert result.returncode == 0
        assert json.loads(result.stdout)["rows"] == []

    def test_list_roles_reports_cycles(self):
        """--list-roles lists membership cycles."""
        script = self.test_dir / "cli_cycle.sql"
        self.output_files.append(script)
        script.write_text("GRANT a TO b; GRANT b TO a;")

        result = self.run_cli(str(script), "--list-roles", "--no-color")

        assert result.returncode == 0
        assert "1 group(s) of roles form membership cycles" in result.stdout
        assert "a -> b -> a" in result.stdout

    def test_list_roles(self):
        """Test --list-roles."""
        result = self.run_cli(str(self.script_file), "--list-roles")

        assert result.returncode == 0
        assert "Roles (4)" in result.stdout
        assert "member_of" in result.stdout

    def test_inheritors(self):
        """Test --inheritors."""
        result = self.run_cli(
            str(self.script_file), "--inheritors", "reporting_group"
        )

        assert result.returncode == 0
        assert "3 role(s) inherit from 'reporting_group'" in result.stdout

    def test_graph_export(self):
        """Test --graph export to DOT and JSON."""
        dot_file = self.test_dir / "cli_graph.dot"
        json_file = self.test_dir / "cli_graph.json"
        self.output_files += [dot_file, json_file]

        result = self.run_cli(str(self.script_file), "--graph", str(dot_file))
        assert result.returncode == 0
        assert '"bob" -> "finance_group";' in dot_file.read_text(encoding="utf-8")

        result = self.run_cli(str(self.script_file), "--graph", str(json_file))
        assert result.returncode == 0
        data = json.loads(json_file.read_text(encoding="utf-8"))
        assert data["statistics"]["total_roles"] == 4

    def test_export_report(self):
        """Test --export to a JSON file."""
        export_file = self.test_dir / "cli_report.json"
        self.output_files.append(export_file)

        result = self.run_cli(
            str(self.script_file), "--user", "alice", "--export", str(export_file)
        )

        assert result.returncode == 0
        data = json.loads(export_file.read_text(encoding="utf-8"))
        assert data["user"] == "alice"
        assert len(data["rows"]) == 2
