"""
Utility functions and helpers for privilege lineage resolution.

This package contains the warning collector, cancellation tokens and the
tabular rendering helpers used by the CLI.
"""

from privilege_lineage.utils.cancellation import CancelToken, check_cancelled
from privilege_lineage.utils.warnings import LineageWarning, WarningCollector

__all__ = [
    "CancelToken",
    "check_cancelled",
    "LineageWarning",
    "WarningCollector",
]
