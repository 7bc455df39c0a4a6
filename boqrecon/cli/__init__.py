"""
CLI Module - Command-line interface for BOQ/KPI reconciliation.

Provides commands for:
- Activity reports and rollups
- Report export
- Unmatched KPI diagnostics
- Importing export files
"""

from .report_commands import register_commands

__all__ = ['register_commands']
