"""
Exception hierarchy for the PQA Scoring Engine.

Only the orchestration layer (config validation, store access, single-account
lookups) raises these. The pure stages degrade bad data to "no contribution".
"""

from typing import List, Optional


class PQAEngineError(Exception):
    """Base class for all engine errors"""


class InvalidConfig(PQAEngineError):
    """A scoring config failed validation. Nothing was written."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid scoring config")


class AccountScoringFailure(PQAEngineError):
    """One account's signal set could not be scored"""

    def __init__(self, account_id: str, reason: str):
        self.account_id = account_id
        self.reason = reason
        super().__init__(f"Failed to score account {account_id}: {reason}")


class NotFound(PQAEngineError):
    """Unknown organization or account"""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class StoreUnavailable(PQAEngineError):
    """A backing store could not be reached. Callers are expected to retry."""

    def __init__(self, store: str, cause: Optional[BaseException] = None):
        self.store = store
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"{store} unavailable{detail}")
