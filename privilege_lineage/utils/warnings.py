"""
Warning system for privilege lineage resolution.

This module defines warning and error collection functionality for the
resolver, allowing problems found in role data (skipped edges, unsupported
script statements) to be collected during a resolution and reported with
its result.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class LineageWarning:
    """Warning or error message for a resolution.

    Attributes:
        level: Severity level ("INFO", "WARNING", "ERROR").
        message: Warning or error message text.
        context: Optional context information (e.g. the offending edge).

    Example:
        >>> warning = LineageWarning(
        ...     level="WARNING",
        ...     message="Skipped membership edge",
        ...     context="alice -> ghost"
        ... )
        >>> warning.level
        'WARNING'
    """

    level: str
    message: str
    context: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate warning level."""
        valid_levels = ["INFO", "WARNING", "ERROR"]
        if self.level not in valid_levels:
            raise ValueError(
                f"Invalid warning level: {self.level}. "
                f"Must be one of {valid_levels}"
            )

    def to_dict(self) -> dict[str, Optional[str]]:
        return {
            "level": self.level,
            "message": self.message,
            "context": self.context,
        }


class WarningCollector:
    """Collects warnings and errors during a resolution.

    Attributes:
        warnings: List of LineageWarning objects collected so far.

    Example:
        >>> collector = WarningCollector()
        >>> collector.add("WARNING", "Skipped edge")
        >>> collector.has_errors()
        False
        >>> len(collector.get_all())
        1
    """

    def __init__(self) -> None:
        """Initialize a WarningCollector."""
        self.warnings: list[LineageWarning] = []

    def __len__(self) -> int:
        return len(self.warnings)

    def add(
        self, level: str, message: str, context: Optional[str] = None
    ) -> None:
        """Add a warning or error message.

        Args:
            level: Severity level ("INFO", "WARNING", "ERROR").
            message: Warning or error message text.
            context: Optional context information.
        """
        warning = LineageWarning(level=level, message=message, context=context)
        self.warnings.append(warning)

    def extend(self, other: WarningCollector) -> None:
        """Append all warnings collected by another collector."""
        self.warnings.extend(other.warnings)

    def has_errors(self) -> bool:
        """Check if any error-level warnings exist."""
        return any(warning.level == "ERROR" for warning in self.warnings)

    def get_all(self) -> list[LineageWarning]:
        """Get all collected warnings, in the order they were added."""
        return self.warnings.copy()

    def get_by_level(self, level: str) -> list[LineageWarning]:
        """Get warnings and errors by severity level.

        Args:
            level: Severity level to filter by ("INFO", "WARNING", "ERROR").

        Returns:
            List of LineageWarning objects with the specified level.
        """
        return [
            warning for warning in self.warnings if warning.level == level
        ]

    def clear(self) -> None:
        """Clear all collected warnings and errors."""
        self.warnings.clear()

    def add_skipped_edge_warning(
        self, member: str, group: str, reason: str
    ) -> None:
        """Add a warning for a membership edge skipped in lenient mode.

        Args:
            member: Member side of the skipped edge.
            group: Group side of the skipped edge.
            reason: Why the edge was skipped.
        """
        message = (
            f"Skipped membership edge '{member}' -> '{group}': {reason}. "
            f"Results may be missing privileges inherited through it."
        )
        self.add("WARNING", message, f"{member} -> {group}")

    def add_skipped_statement_warning(self, reason: str, statement: str) -> None:
        """Add a warning for a script statement that could not be applied.

        Args:
            reason: Why the statement was skipped.
            statement: Statement text, shortened for display.
        """
        preview = statement if len(statement) <= 80 else statement[:77] + "..."
        self.add(
            "WARNING", f"Skipped statement that cannot be modelled: {reason}.", preview
        )

    def get_summary(self) -> dict[str, int]:
        """Get a summary of warnings by level.

        Returns:
            Dictionary with counts of warnings by level.
        """
        summary: dict[str, int] = {"INFO": 0, "WARNING": 0, "ERROR": 0}
        for warning in self.warnings:
            summary[warning.level] = summary.get(warning.level, 0) + 1
        return summary
