"""
Domain Layer - report inputs and boundary exceptions.

- entities: Activity, KPIRecord, Snapshot
- exceptions: DomainError hierarchy
"""
