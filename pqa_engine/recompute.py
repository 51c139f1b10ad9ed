"""
Recompute Orchestrator
======================
Re-scores every account in an organization and persists the results.

Per account:
  load signals → Stage 2 aggregate → Stage 3 trend vs. stored score → upsert

The config is read once at the start of a run and passed to every account,
so a concurrent config update can never split a run across two rule sets.
Accounts are scored on a bounded thread pool.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from .config.settings import ENGINE_CONFIG, MAX_WORKERS, MIN_WORKERS
from .config_manager import ScoringConfigManager
from .errors import AccountScoringFailure, NotFound
from .logging_config import get_logger
from .models.schemas import AccountScore, RecomputeResult, ScoringConfig, Signal
from .stages.stage2_aggregator import ScoreAggregator, score_id_for
from .stages.stage3_trend import TrendCalculator
from .storage.interfaces import (
    AccountDirectory,
    AccountScoreStore,
    SignalStore,
    call_store,
)

logger = get_logger(__name__)

# Data-shape errors raised while loading or scoring one account
SCORING_DATA_ERRORS = (ValueError, TypeError, KeyError, AttributeError, ArithmeticError)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def resolve_max_workers(max_workers: Optional[int] = None) -> int:
    """Pool size from the argument or ENGINE_CONFIG, clamped to the allowed range"""
    if max_workers is None:
        max_workers = ENGINE_CONFIG["max_workers"]
    return max(MIN_WORKERS, min(MAX_WORKERS, int(max_workers)))


def load_account_signals(
    signal_store: SignalStore,
    organization_id: str,
    account_id: str,
    reference_time: datetime,
    lookback_days: Optional[int] = None,
) -> List[Signal]:
    """Read an account's signals, limited to the lookback window when one is set"""
    since = None
    if lookback_days:
        since = reference_time - timedelta(days=lookback_days)
    return call_store(
        "signal store",
        signal_store.list_signals_for_account,
        organization_id,
        account_id,
        since,
    )


class RecomputeOrchestrator:
    """
    Bulk and single-account re-scoring for an organization.
    """

    def __init__(
        self,
        config_manager: ScoringConfigManager,
        signal_store: SignalStore,
        account_directory: AccountDirectory,
        score_store: AccountScoreStore,
        aggregator: Optional[ScoreAggregator] = None,
        trend_calculator: Optional[TrendCalculator] = None,
        max_workers: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            config_manager: Source of the active config, and target of recompute-with-config
            signal_store: Read-only signal source
            account_directory: Lists the accounts of an organization
            score_store: Where AccountScore snapshots are written
            aggregator: Stage 2 (default instance if omitted)
            trend_calculator: Stage 3 (default instance if omitted)
            max_workers: Pool size (ENGINE_CONFIG["max_workers"] if omitted)
            clock: Returns the reference time of a run
        """
        self.config_manager = config_manager
        self.signal_store = signal_store
        self.account_directory = account_directory
        self.score_store = score_store
        self.aggregator = aggregator or ScoreAggregator()
        self.trend_calculator = trend_calculator or TrendCalculator()
        self.max_workers = resolve_max_workers(max_workers)
        self.clock = clock
        self.lookback_days = ENGINE_CONFIG.get("signal_lookback_days")

    def recompute(
        self,
        organization_id: str,
        config: Optional[Union[ScoringConfig, Dict[str, Any]]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> RecomputeResult:
        """
        Re-score every account of an organization.

        Args:
            organization_id: Organization to recompute
            config: Optional new config. Stored once the organization resolves;
                nothing is stored or scored if it is invalid
            cancel_event: Set it to stop scoring accounts that have not started yet

        Returns:
            RecomputeResult with the number of accounts written and any skipped ids

        Raises:
            InvalidConfig: the supplied config was rejected (no scores touched)
            NotFound: unknown organization
            StoreUnavailable: a store could not be reached
        """
        start_time = time.time()

        if config is not None:
            active = self.config_manager.validate_config(organization_id, config)
        else:
            active = self.config_manager.get_config(organization_id)

        account_ids = call_store(
            "account directory", self.account_directory.list_account_ids, organization_id
        )
        # Stored only once the organization is known to exist
        if config is not None:
            active = self.config_manager.update_config(organization_id, active)

        reference_time = self.clock()
        cancel_event = cancel_event or threading.Event()
        abort_event = threading.Event()

        def score_one(account_id: str) -> Optional[AccountScore]:
            if cancel_event.is_set() or abort_event.is_set():
                return None
            try:
                return self._score_and_save(organization_id, account_id, active, reference_time)
            except AccountScoringFailure:
                raise
            except Exception:
                abort_event.set()
                raise

        updated = 0
        skipped_ids: List[str] = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [(account_id, executor.submit(score_one, account_id)) for account_id in account_ids]
            for account_id, future in futures:
                try:
                    result = future.result()
                except AccountScoringFailure as e:
                    logger.warning("Skipping account %s in org %s: %s", account_id, organization_id, e.reason)
                    skipped_ids.append(account_id)
                    continue
                except Exception:
                    abort_event.set()
                    raise
                if result is not None:
                    updated += 1

        cancelled = cancel_event.is_set() and updated + len(skipped_ids) < len(account_ids)
        elapsed_ms = (time.time() - start_time) * 1000
        logger.info(
            "Recompute for org %s: %d/%d updated, %d skipped%s (%.1f ms)",
            organization_id,
            updated,
            len(account_ids),
            len(skipped_ids),
            ", cancelled" if cancelled else "",
            elapsed_ms,
        )

        return RecomputeResult(
            updated=updated,
            config=active,
            total=len(account_ids),
            skipped=len(skipped_ids),
            skipped_account_ids=skipped_ids,
            cancelled=cancelled,
        )

    def compute_account(
        self,
        organization_id: str,
        account_id: str,
        config: Optional[ScoringConfig] = None,
    ) -> AccountScore:
        """
        Recompute and store one account's score under the active config.

        Raises:
            NotFound: the account is not part of the organization
            AccountScoringFailure: the account's signals could not be scored
            StoreUnavailable: a store could not be reached
        """
        account_ids = call_store(
            "account directory", self.account_directory.list_account_ids, organization_id
        )
        if account_id not in account_ids:
            raise NotFound("Account", account_id)

        active = config or self.config_manager.get_config(organization_id)
        score = self._score_and_save(organization_id, account_id, active, self.clock())
        logger.info(
            "Computed score for account %s in org %s: %.1f (%s)",
            account_id, organization_id, score.score, score.tier.value,
        )
        return score

    # =========================================================================
    # Per-account pipeline
    # =========================================================================

    def _score_and_save(
        self,
        organization_id: str,
        account_id: str,
        config: ScoringConfig,
        reference_time: datetime,
    ) -> AccountScore:
        """Score one account, assign its trend, and upsert it"""
        try:
            signals = load_account_signals(
                self.signal_store, organization_id, account_id, reference_time, self.lookback_days
            )
            score = self.aggregator.aggregate(
                account_id,
                signals,
                config,
                reference_time,
                score_id=score_id_for(account_id, organization_id),
            )
        except SCORING_DATA_ERRORS as e:
            raise AccountScoringFailure(account_id, str(e)) from e

        previous = call_store(
            "score store", self.score_store.load_latest, organization_id, account_id
        )
        previous_score = previous.score if previous is not None else None
        score.trend = self.trend_calculator.trend(previous_score, score.score)

        call_store("score store", self.score_store.save, organization_id, score)
        return score
