"""Version information."""

__version__ = "1.0.0"
__version_info__ = (1, 0, 0)

# Version history
CHANGELOG = """
# Changelog

## v1.0.0

**Privilege lineage resolution**

- Transitive role membership traversal (cycle-safe)
- Grant join with table / schema / column projections
- Strict and lenient handling of malformed membership edges
- Cancellation tokens and traversal bounds

**Sources**

- JSON / in-memory snapshots
- PostgreSQL GRANT scripts
- Live PostgreSQL catalog (SQLAlchemy)

**CLI**

- --view lineage/tables/schemas/columns/tree
- --list-roles, --graph export
- Colored output

### Known Limitations

- Default privileges (ALTER DEFAULT PRIVILEGES) are not modelled
- GRANT ... ON ALL TABLES IN SCHEMA needs a catalog source
"""
