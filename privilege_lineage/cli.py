"""
Command-line interface for the privilege lineage resolver.

This module provides a command-line interface for resolving which privileges
a role holds and which role in its membership chain each one comes from,
reading role data from a JSON snapshot, a GRANT script or a live PostgreSQL
catalog.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from colorama import Fore, Style, init

from privilege_lineage import (
    CancelToken,
    CatalogRoleSource,
    DictRoleSource,
    ErrorMode,
    PrivilegeLineageResolver,
    ResolverConfig,
    RoleDataSource,
    ScriptRoleSource,
)
from privilege_lineage.exceptions import LineageError
from privilege_lineage.models.report import LineageReport
from privilege_lineage.utils.formatting import (
    VIEW_KINDS,
    render_membership_tree,
    render_report,
    render_reachable_roles,
    render_roles,
)

init(autoreset=True)
USE_COLOR = True

TABLE_FORMATS = {"table": "simple", "plain": "plain", "github": "github"}


def _paint(color: str, msg: str) -> str:
    return f"{color}{msg}{Style.RESET_ALL}" if USE_COLOR else msg


def print_success(msg: str) -> None:
    """Print success message."""
    print(_paint(Fore.GREEN, f"[OK] {msg}"))


def print_error(msg: str) -> None:
    """Print error message."""
    print(_paint(Fore.RED, f"[ERROR] {msg}"), file=sys.stderr)


def print_warning(msg: str) -> None:
    """Print warning message."""
    print(_paint(Fore.YELLOW, f"[WARN] {msg}"))


def print_info(msg: str) -> None:
    """Print info message."""
    print(_paint(Fore.CYAN, msg))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="privilege-lineage",
        description="Privilege Lineage Resolver: who gets what from where",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Full lineage of a user from a GRANT script
  %(prog)s roles.sql --user alice

  # Table privileges only, from a JSON snapshot
  %(prog)s snapshot.json --user bob --view tables

  # Column privileges on one table, straight from the catalog
  %(prog)s postgresql+psycopg://auditor@db/app --user bob --view columns --object employees

  # Membership tree
  %(prog)s roles.sql --user bob --view tree

  # Who inherits from a group
  %(prog)s roles.sql --inheritors reporting_group

  # Export the membership graph
  %(prog)s roles.sql --graph roles.dot
        """,
    )

    # === Input parameters ===
    input_group = parser.add_argument_group("Input Options")
    input_group.add_argument(
        "source",
        help="JSON snapshot, SQL GRANT script, or database URL",
    )
    input_group.add_argument(
        "--source-type",
        choices=["auto", "json", "sql", "catalog"],
        default="auto",
        help="How to read SOURCE (default: by extension or URL)",
    )
    input_group.add_argument(
        "--default-schema",
        default="public",
        help="Schema for unqualified table names in scripts (default: public)",
    )

    # === Commands (exactly one) ===
    command_group = parser.add_argument_group("Commands")
    commands = command_group.add_mutually_exclusive_group(required=True)
    commands.add_argument("--user", "-u", help="Role to resolve")
    commands.add_argument(
        "--inheritors",
        metavar="ROLE",
        help="List every role that inherits privileges granted to ROLE",
    )
    commands.add_argument("--list-roles", action="store_true", help="List all roles")
    commands.add_argument(
        "--graph",
        metavar="FILE",
        help="Export the membership graph (.dot or .json)",
    )

    # === Query parameters ===
    query_group = parser.add_argument_group("Query Options")
    query_group.add_argument(
        "--view",
        "-v",
        choices=["lineage", "tables", "schemas", "columns", "tree"],
        default="lineage",
        help="Audit view (default: lineage)",
    )
    query_group.add_argument("--privilege", "-p", help="Only this privilege")
    query_group.add_argument("--schema", help="Only resources in this schema")
    query_group.add_argument(
        "--object", dest="object_name", help="Only this table or object"
    )

    # === Output parameters ===
    output_group = parser.add_argument_group("Output Options")
    output_group.add_argument(
        "--format",
        "-f",
        choices=["table", "plain", "github", "json"],
        default="table",
        help="Output format (default: table)",
    )
    output_group.add_argument(
        "--export", "-o", metavar="FILE", help="Write the report to a file"
    )
    output_group.add_argument(
        "--no-color", action="store_true", help="Disable colored output"
    )

    # === Configuration parameters ===
    config_group = parser.add_argument_group("Configuration")
    config_group.add_argument(
        "--strict",
        action="store_true",
        help="Fail on malformed membership edges instead of skipping them",
    )
    config_group.add_argument(
        "--no-warnings", action="store_true", help="Suppress warnings"
    )
    config_group.add_argument(
        "--max-depth",
        type=int,
        default=64,
        help="Maximum membership chain length (default: 64)",
    )
    config_group.add_argument(
        "--honor-noinherit",
        action="store_true",
        help="Do not inherit privileges through NOINHERIT memberships",
    )
    config_group.add_argument(
        "--timeout",
        type=float,
        help="Abort the resolution after this many seconds",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """
    CLI main entry point.

    Supported commands:
        privilege-lineage roles.sql --user alice
        privilege-lineage roles.sql --user alice --view tables
        privilege-lineage snapshot.json --user bob --view tree
        privilege-lineage roles.sql --inheritors reporting_group
        privilege-lineage roles.sql --list-roles
        privilege-lineage roles.sql --graph roles.dot
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    # Disable color
    global USE_COLOR
    if args.no_color:
        USE_COLOR = False

    quiet = args.format == "json"

    try:
        config = ResolverConfig(
            on_malformed_edge=ErrorMode.FAIL if args.strict else ErrorMode.WARN,
            max_depth=args.max_depth,
            honor_noinherit=args.honor_noinherit,
            default_schema=args.default_schema,
        )
        source = open_source(args.source, args.source_type, config)
        if not quiet:
            print_info(f"Reading roles from: {source.describe()}")

        resolver = PrivilegeLineageResolver(source, config)
        cancel_token = CancelToken(timeout=args.timeout) if args.timeout else None

        if args.graph:
            handle_graph_export(resolver, args.graph, cancel_token)
        elif args.list_roles:
            handle_list_roles(resolver, args.format, cancel_token)
        elif args.inheritors:
            handle_inheritors(resolver, args.inheritors, args.format, cancel_token)
        else:
            report = handle_resolve(resolver, args, cancel_token)
            if args.export:
                handle_export(report, args.export, args.view, args.format)
            if not args.no_warnings:
                # stdout stays machine-readable for --format json
                show_warnings(report, sys.stderr if quiet else sys.stdout)

    except LineageError as e:
        print_error(f"Lineage resolution failed: {e}")
        sys.exit(1)
    except ValueError as e:
        print_error(str(e))
        sys.exit(1)


def open_source(
    location: str, source_type: str, config: ResolverConfig
) -> RoleDataSource:
    """Create the data source for a CLI SOURCE argument.

    Raises:
        SourceUnavailableError: If a file source does not exist.
        ValueError: If the source type cannot be determined.
    """
    if source_type == "auto":
        source_type = detect_source_type(location)

    if source_type == "catalog":
        return CatalogRoleSource(location)

    path = Path(location)
    if source_type == "json":
        return DictRoleSource.from_json(path)
    return ScriptRoleSource.from_file(path, default_schema=config.default_schema)


def detect_source_type(location: str) -> str:
    """Guess the source type from a URL scheme or a file extension."""
    if "://" in location:
        return "catalog"
    suffix = Path(location).suffix.lower()
    if suffix == ".json":
        return "json"
    if suffix in (".sql", ".psql", ".pgsql"):
        return "sql"
    raise ValueError(
        f"Cannot tell how to read '{location}'. Use --source-type."
    )


def handle_resolve(
    resolver: PrivilegeLineageResolver,
    args: argparse.Namespace,
    cancel_token: Optional[CancelToken],
) -> LineageReport:
    """Handle --user: resolve and print one audit view."""
    if args.view == "tree":
        report = resolver.membership_tree(args.user, cancel_token=cancel_token)
    else:
        report = resolver.resolve_lineage(
            args.user,
            VIEW_KINDS[args.view],
            privilege=args.privilege,
            schema=args.schema,
            object_name=args.object_name,
            cancel_token=cancel_token,
        )

    if args.format == "json":
        print(report.to_json(indent=2))
        return report

    policy = "strict" if report.edge_policy == ErrorMode.FAIL else "lenient"
    print_info(f"Malformed edge policy: {report.edge_policy.value} ({policy})")
    if report.is_partial:
        print_warning(
            f"{len(report.skipped_edges)} membership edge(s) were skipped; "
            f"inherited privileges may be missing."
        )

    if args.view == "tree":
        print_success(
            f"'{args.user}' belongs to {len(report.reachable_roles) - 1} role(s):\n"
        )
        print(render_membership_tree(report.reachable_roles))
        print()
        print(render_reachable_roles(report.reachable_roles, TABLE_FORMATS[args.format]))
        return report

    print_success(
        f"Found {len(report)} privilege(s) for '{args.user}' "
        f"from {len(report.source_roles())} role(s):\n"
    )
    print(render_report(report, args.view, TABLE_FORMATS[args.format]))
    return report


def handle_inheritors(
    resolver: PrivilegeLineageResolver,
    role: str,
    output_format: str,
    cancel_token: Optional[CancelToken],
) -> None:
    """Handle --inheritors command."""
    inheritors = resolver.find_inheritors(role, cancel_token=cancel_token)

    if output_format == "json":
        print(json.dumps([r.to_dict() for r in inheritors], indent=2))
        return

    if not inheritors:
        print_warning(f"No role inherits privileges from '{role}'")
        return

    print_success(f"{len(inheritors)} role(s) inherit from '{role}':\n")
    print(render_reachable_roles(inheritors, TABLE_FORMATS[output_format]))


def handle_list_roles(
    resolver: PrivilegeLineageResolver,
    output_format: str,
    cancel_token: Optional[CancelToken],
) -> None:
    """Handle --list-roles command."""
    graph, _ = resolver.load_graph(cancel_token)

    if output_format == "json":
        print(json.dumps(graph.to_dict(), indent=2))
        return

    groups = {name: graph.groups_of(name) for name in graph.role_names()}
    print_info(f"\nRoles ({len(graph)}):\n")
    print(render_roles(graph.roles(), groups, TABLE_FORMATS[output_format]))

    cyclic = graph.get_statistics()["cyclic_components"]
    if cyclic:
        cycles = graph.find_cycles(max_length=resolver.config.max_depth)
        print()
        print_warning(
            f"{cyclic} group(s) of roles form membership cycles; "
            f"showing {len(cycles)} cycle(s):"
        )
        for cycle in cycles:
            print(f"  {' -> '.join(cycle + cycle[:1])}")


def handle_graph_export(
    resolver: PrivilegeLineageResolver,
    output_file: str,
    cancel_token: Optional[CancelToken],
) -> None:
    """Export the membership graph as DOT or JSON."""
    graph, _ = resolver.load_graph(cancel_token)
    output_path = Path(output_file)

    if output_path.suffix.lower() == ".json":
        data = graph.to_dict()
        data["statistics"] = graph.get_statistics()
        text = json.dumps(data, indent=2, ensure_ascii=False)
    else:
        text = graph.to_dot()

    output_path.write_text(text, encoding="utf-8")
    print_success(f"Exported membership graph to {output_path}")


def handle_export(
    report: LineageReport, output_file: str, view: str, output_format: str
) -> None:
    """Write the report to a file (JSON for .json files or --format json)."""
    output_path = Path(output_file)

    if output_format == "json" or output_path.suffix.lower() == ".json":
        text = report.to_json(indent=2)
    else:
        text = render_report(report, view, TABLE_FORMATS.get(output_format, "simple"))

    output_path.write_text(text + "\n", encoding="utf-8")
    if output_format != "json":
        print_success(f"Exported to {output_path}")


def show_warnings(report: LineageReport, out=None) -> None:
    """Show warning messages."""
    warnings = [w for w in report.warnings if w.level != "INFO"]
    if not warnings:
        return
    out = out or sys.stdout
    print(_paint(Fore.YELLOW, f"\n{len(warnings)} warning(s):"), file=out)
    for i, warning in enumerate(warnings, 1):
        context = f" [{warning.context}]" if warning.context else ""
        print(f"  {i}. {warning.message}{context}", file=out)


if __name__ == "__main__":
    main()
