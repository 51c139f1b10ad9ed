"""
Store interfaces consumed by the engine.

All stores are tenant-scoped by organization id. Implementations raise
StoreUnavailable when the backing system cannot be reached, and
AccountDirectory raises NotFound for an unknown organization.
"""

from datetime import datetime
from typing import Callable, List, Optional, Protocol, TypeVar

from ..errors import StoreUnavailable
from ..models.schemas import AccountScore, ScoringConfig, Signal

T = TypeVar("T")


class SignalStore(Protocol):
    def list_signals_for_account(
        self,
        organization_id: str,
        account_id: str,
        since: Optional[datetime] = None,
    ) -> List[Signal]:
        ...


class AccountDirectory(Protocol):
    def list_account_ids(self, organization_id: str) -> List[str]:
        ...


class ConfigStore(Protocol):
    def load(self, organization_id: str) -> Optional[ScoringConfig]:
        ...

    def save(self, organization_id: str, config: ScoringConfig) -> None:
        """Atomic full-document overwrite"""
        ...


class AccountScoreStore(Protocol):
    def load_latest(self, organization_id: str, account_id: str) -> Optional[AccountScore]:
        ...

    def save(self, organization_id: str, score: AccountScore) -> None:
        """Upsert the latest score and append it to the account's history"""
        ...

    def list_latest(self, organization_id: str) -> List[AccountScore]:
        ...

    def list_history(
        self,
        organization_id: str,
        account_id: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> List[AccountScore]:
        """Chronological snapshots, optionally for one account"""
        ...


# =============================================================================
# Helpers
# =============================================================================

CONNECTIVITY_ERRORS = (ConnectionError, TimeoutError, OSError)


def call_store(store_name: str, method: Callable[..., T], *args, **kwargs) -> T:
    """
    Invoke a store method, translating connectivity failures into
    StoreUnavailable. Other exceptions propagate unchanged.
    """
    try:
        return method(*args, **kwargs)
    except StoreUnavailable:
        raise
    except CONNECTIVITY_ERRORS as e:
        raise StoreUnavailable(store_name, e) from e
