"""
In-memory store implementations (replace with database in production).

Every store guards its maps with a lock and hands out deep copies, so a
reader never observes a half-written document and callers cannot mutate
stored state through a returned object.
"""

import threading
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from ..models.schemas import AccountScore, ScoringConfig, Signal, ensure_utc
from ..errors import NotFound


class InMemoryAccountDirectory:
    """Account ids per organization"""

    def __init__(self):
        self._lock = threading.Lock()
        self._accounts: Dict[str, List[str]] = {}

    def add_organization(self, organization_id: str) -> None:
        with self._lock:
            self._accounts.setdefault(organization_id, [])

    def add_account(self, organization_id: str, account_id: str) -> None:
        with self._lock:
            accounts = self._accounts.setdefault(organization_id, [])
            if account_id not in accounts:
                accounts.append(account_id)

    def list_account_ids(self, organization_id: str) -> List[str]:
        with self._lock:
            if organization_id not in self._accounts:
                raise NotFound("Organization", organization_id)
            return list(self._accounts[organization_id])


class InMemorySignalStore:
    """Append-only signal log per organization"""

    def __init__(self):
        self._lock = threading.Lock()
        self._signals: Dict[str, List[Signal]] = defaultdict(list)

    def add_signals(self, organization_id: str, signals: Iterable[Signal]) -> None:
        with self._lock:
            self._signals[organization_id].extend(s.model_copy(deep=True) for s in signals)

    def list_signals_for_account(
        self,
        organization_id: str,
        account_id: str,
        since: Optional[datetime] = None,
    ) -> List[Signal]:
        cutoff = ensure_utc(since) if since else None
        with self._lock:
            return [
                s.model_copy(deep=True)
                for s in self._signals.get(organization_id, [])
                if s.account_id == account_id and (cutoff is None or s.timestamp >= cutoff)
            ]


class InMemoryConfigStore:
    """One scoring config document per organization"""

    def __init__(self):
        self._lock = threading.Lock()
        self._configs: Dict[str, ScoringConfig] = {}

    def load(self, organization_id: str) -> Optional[ScoringConfig]:
        with self._lock:
            config = self._configs.get(organization_id)
            return config.model_copy(deep=True) if config else None

    def save(self, organization_id: str, config: ScoringConfig) -> None:
        # copy outside the lock, then swap the reference in one step
        document = config.model_copy(deep=True)
        with self._lock:
            self._configs[organization_id] = document


class InMemoryAccountScoreStore:
    """Latest score per account plus an append-only snapshot history"""

    def __init__(self):
        self._lock = threading.Lock()
        self._latest: Dict[Tuple[str, str], AccountScore] = {}
        self._history: Dict[str, List[Tuple[str, AccountScore]]] = defaultdict(list)

    def load_latest(self, organization_id: str, account_id: str) -> Optional[AccountScore]:
        with self._lock:
            score = self._latest.get((organization_id, account_id))
            return score.model_copy(deep=True) if score else None

    def save(self, organization_id: str, score: AccountScore) -> None:
        document = score.model_copy(deep=True)
        with self._lock:
            self._latest[(organization_id, score.account_id)] = document
            self._history[organization_id].append((score.account_id, document))

    def list_latest(self, organization_id: str) -> List[AccountScore]:
        with self._lock:
            return [
                score.model_copy(deep=True)
                for (org_id, _), score in self._latest.items()
                if org_id == organization_id
            ]

    def list_history(
        self,
        organization_id: str,
        account_id: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> List[AccountScore]:
        cutoff = ensure_utc(since) if since else None
        with self._lock:
            entries = [
                score.model_copy(deep=True)
                for acc_id, score in self._history.get(organization_id, [])
                if (account_id is None or acc_id == account_id)
                and (cutoff is None or score.computed_at >= cutoff)
            ]
        entries.sort(key=lambda s: s.computed_at)
        return entries
