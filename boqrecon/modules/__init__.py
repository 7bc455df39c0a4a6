"""
Reconciliation engine modules: normalization, dates, matching, earned value,
schedule dates, progress/status, report aggregation and reporting helpers.
"""
