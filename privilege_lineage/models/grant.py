"""
Grant and resource reference models.

This module defines the ResourceRef class, which identifies a schema, table
or table column, the ResourceKind enum used to filter audits by resource
kind, and the Grant class, which assigns a privilege on a resource to a role.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ResourceKind(str, Enum):
    """Kind of resource a grant applies to.

    Every ResourceRef has exactly one kind, so filtering a report by each
    kind in turn partitions it.
    """

    SCHEMA = "schema"
    TABLE = "table"
    COLUMN = "column"

    @classmethod
    def values(cls) -> list[str]:
        """Return a list of all possible resource kind values."""
        return [member.value for member in cls]


@dataclass(frozen=True)
class ResourceRef:
    """Reference to a schema, a table in a schema, or a column of a table.

    Attributes:
        schema: Schema name (required).
        object: Table (or other relation) name. None for schema resources.
        column: Column name. Only valid together with an object.

    Example:
        >>> ResourceRef("hr", "employees").kind
        <ResourceKind.TABLE: 'table'>
        >>> ResourceRef("hr", "employees", "salary").to_qualified_name()
        'hr.employees.salary'
        >>> ResourceRef("hr").kind
        <ResourceKind.SCHEMA: 'schema'>
    """

    schema: str
    object: Optional[str] = None
    column: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate the reference."""
        if not self.schema:
            raise ValueError("schema name cannot be empty")
        if self.column is not None and self.object is None:
            raise ValueError("a column resource requires an object name")

    @property
    def kind(self) -> ResourceKind:
        """Return the resource kind derived from which parts are set."""
        if self.object is None:
            return ResourceKind.SCHEMA
        if self.column is not None:
            return ResourceKind.COLUMN
        return ResourceKind.TABLE

    def sort_key(self) -> tuple[str, str, str]:
        """Sort key placing missing parts before named ones."""
        return (self.schema, self.object or "", self.column or "")

    def to_qualified_name(self) -> str:
        """Return "schema[.object[.column]]"."""
        parts = [self.schema]
        if self.object is not None:
            parts.append(self.object)
        if self.column is not None:
            parts.append(self.column)
        return ".".join(parts)

    def __str__(self) -> str:
        return self.to_qualified_name()


@dataclass(frozen=True)
class Grant:
    """Assignment of a privilege on a resource to a role.

    Privilege names form an open set; they are normalized to upper case so
    that "select" and "SELECT" compare equal.

    Attributes:
        grantee: Name of the role holding the privilege.
        resource: Resource the privilege applies to.
        privilege: Privilege name, e.g. "SELECT" or "USAGE".

    Example:
        >>> g = Grant("reporting_group", ResourceRef("hr", "employees"), "select")
        >>> g.privilege
        'SELECT'
    """

    grantee: str
    resource: ResourceRef
    privilege: str

    def __post_init__(self) -> None:
        """Validate and normalize the grant."""
        if not self.grantee:
            raise ValueError("grantee cannot be empty")
        if not self.privilege or not self.privilege.strip():
            raise ValueError("privilege cannot be empty")
        normalized = " ".join(self.privilege.split()).upper()
        # frozen dataclass: bypass __setattr__ to store the normalized name
        object.__setattr__(self, "privilege", normalized)

    @property
    def kind(self) -> ResourceKind:
        """Return the kind of the granted resource."""
        return self.resource.kind

    @classmethod
    def from_row(
        cls,
        grantee: str,
        schema: str,
        object_name: Optional[str],
        column: Optional[str],
        privilege: str,
    ) -> "Grant":
        """Build a Grant from a flat (grantee, schema, object, column,
        privilege) row as returned by data sources."""
        return cls(
            grantee=grantee,
            resource=ResourceRef(schema, object_name or None, column or None),
            privilege=privilege,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "grantee": self.grantee,
            "schema": self.resource.schema,
            "object": self.resource.object,
            "column": self.resource.column,
            "privilege": self.privilege,
        }
