"""
Infrastructure Layer - storage access and retry handling.

This module provides:
- Repository pattern for stored activity/KPI rows
- Retry policy for snapshot loads
"""
