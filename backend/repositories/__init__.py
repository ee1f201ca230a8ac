"""
Repository Pattern - Storage abstraction layer

Repositories hide storage details (PostgreSQL) from business logic.
Consumers work with domain models, not storage-specific types.

- SubmissionRepository: PostgreSQL submissions ledger (append + reads)
"""
from .submission_repository import SubmissionRepository

__all__ = ['SubmissionRepository']
