"""
Domain Models - Storage-agnostic data structures

These models represent the persisted side of the system independent of
the storage layer. Workers and services operate on these models, not
raw database rows.

Architecture:
- Domain models are pure Python objects (dataclasses)
- Storage details (PostgreSQL) are abstracted via repositories
- Engine types (Submission, Verdict) live in vigil.types
"""

from .submission import (
    LedgerEntry,
    submission_to_job,
    submission_from_job,
)

__all__ = [
    'LedgerEntry',
    'submission_to_job',
    'submission_from_job',
]
