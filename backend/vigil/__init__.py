"""
Vigil: duplicate-detection and anomaly-scoring engine
=====================================================

Classifies each incoming video note using a fast ephemeral window
(Redis in production) plus the slower submission ledger.

ARCHITECTURE:
    Submission → AnomalyScorer      (ledger history → anomaly flags)
               → DuplicateClassifier (window check-then-commit)
               → DecisionCoordinator → Decision(Verdict | failure)

The engine owns no connections. Window stores and ledger readers are
injected by the entry points, which also own their lifecycle.
"""

from .types import (
    AnomalyLabel,
    Classification,
    DuplicateReason,
    HistoricalRecord,
    Submission,
    Verdict,
)
from .errors import (
    LedgerError,
    LedgerTimeout,
    MalformedSubmission,
    ProcessingFailure,
    WindowStoreError,
    WindowStoreTimeout,
)
from .deadline import Deadline, bounded
from .window import (
    DeleteKey,
    Expire,
    InMemoryWindowStore,
    PushFront,
    RemoveOne,
    SetKey,
    Trim,
    WindowStore,
)
from .classifier import DuplicateClassifier
from .scorer import AnomalyScorer, HistorySource, score_history
from .coordinator import Decision, DecisionCoordinator, DecisionStatus, WorkerLocks

__all__ = [
    # Types
    'AnomalyLabel',
    'Classification',
    'DuplicateReason',
    'HistoricalRecord',
    'Submission',
    'Verdict',

    # Failures
    'LedgerError',
    'LedgerTimeout',
    'MalformedSubmission',
    'ProcessingFailure',
    'WindowStoreError',
    'WindowStoreTimeout',

    # Deadlines
    'Deadline',
    'bounded',

    # Window
    'WindowStore',
    'InMemoryWindowStore',
    'SetKey',
    'PushFront',
    'Trim',
    'Expire',
    'DeleteKey',
    'RemoveOne',

    # Engine
    'DuplicateClassifier',
    'AnomalyScorer',
    'HistorySource',
    'score_history',
    'DecisionCoordinator',
    'Decision',
    'DecisionStatus',
    'WorkerLocks',
]
