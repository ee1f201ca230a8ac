"""
Failure taxonomy for submission processing.

Every infrastructure failure is a ProcessingFailure so the coordinator can
tell "not a duplicate" apart from "undetermined". Malformed input is a
separate branch: it is rejected before classification and never reaches
the engine.
"""


class ProcessingFailure(Exception):
    """Base: the verdict could not be computed."""


class WindowStoreError(ProcessingFailure):
    """Ephemeral window store unreachable or returned an error."""


class WindowStoreTimeout(WindowStoreError):
    """Ephemeral window store call exceeded its deadline."""


class LedgerError(ProcessingFailure):
    """Submission ledger unreachable or returned an error."""


class LedgerTimeout(LedgerError):
    """Submission ledger call exceeded its deadline."""


class MalformedSubmission(ValueError):
    """Submission event is missing required fields or has invalid values."""
