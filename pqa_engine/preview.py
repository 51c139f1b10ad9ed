"""
Preview (dry-run) Service
=========================
Applies a candidate config to every account's current signals and reports
the before/after score and tier, without writing anything.

"Before" is the stored AccountScore (never recomputed here); "after" is a
fresh Stage 2 aggregation under the candidate config.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from .config.settings import ENGINE_CONFIG
from .errors import AccountScoringFailure
from .logging_config import get_logger
from .models.schemas import ScorePreview, ScoreTier, ScoringConfig
from .models.scoring_config import parse_scoring_config
from .recompute import SCORING_DATA_ERRORS, load_account_signals, resolve_max_workers, utc_now
from .stages.stage2_aggregator import ScoreAggregator
from .storage.interfaces import (
    AccountDirectory,
    AccountScoreStore,
    SignalStore,
    call_store,
)

logger = get_logger(__name__)


class PreviewService:
    """
    Read-only simulation of a recompute under a candidate config.
    """

    def __init__(
        self,
        signal_store: SignalStore,
        account_directory: AccountDirectory,
        score_store: AccountScoreStore,
        aggregator: Optional[ScoreAggregator] = None,
        max_workers: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.signal_store = signal_store
        self.account_directory = account_directory
        self.score_store = score_store
        self.aggregator = aggregator or ScoreAggregator()
        self.max_workers = resolve_max_workers(max_workers)
        self.clock = clock
        self.lookback_days = ENGINE_CONFIG.get("signal_lookback_days")

    def preview(
        self,
        organization_id: str,
        candidate: Union[ScoringConfig, Dict[str, Any]],
    ) -> List[ScorePreview]:
        """
        Compare stored scores with scores under a candidate config.

        Args:
            organization_id: Organization to simulate
            candidate: Config to try (validated, never stored)

        Returns:
            One ScorePreview per account, in account directory order.
            Accounts whose signals cannot be scored are logged and left out.

        Raises:
            InvalidConfig: the candidate is malformed
            NotFound: unknown organization
            StoreUnavailable: a store could not be reached
        """
        start_time = time.time()
        config = parse_scoring_config(candidate)
        account_ids = call_store(
            "account directory", self.account_directory.list_account_ids, organization_id
        )
        reference_time = self.clock()

        def preview_one(account_id: str) -> Optional[ScorePreview]:
            try:
                return self._preview_account(organization_id, account_id, config, reference_time)
            except AccountScoringFailure as e:
                logger.warning(
                    "Leaving account %s out of preview for org %s: %s",
                    account_id, organization_id, e.reason,
                )
                return None

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            results = list(executor.map(preview_one, account_ids))

        previews = [p for p in results if p is not None]
        logger.info(
            "Preview for org %s: %d accounts, %d tier changes (%.1f ms)",
            organization_id,
            len(previews),
            sum(1 for p in previews if p.current_tier != p.preview_tier),
            (time.time() - start_time) * 1000,
        )
        return previews

    def _preview_account(
        self,
        organization_id: str,
        account_id: str,
        config: ScoringConfig,
        reference_time: datetime,
    ) -> ScorePreview:
        current = call_store(
            "score store", self.score_store.load_latest, organization_id, account_id
        )
        try:
            signals = load_account_signals(
                self.signal_store, organization_id, account_id, reference_time, self.lookback_days
            )
            simulated = self.aggregator.aggregate(account_id, signals, config, reference_time)
        except SCORING_DATA_ERRORS as e:
            raise AccountScoringFailure(account_id, str(e)) from e

        current_score = current.score if current is not None else 0.0
        current_tier = current.tier if current is not None else ScoreTier.INACTIVE
        return ScorePreview(
            account_id=account_id,
            current_score=current_score,
            preview_score=simulated.score,
            current_tier=current_tier,
            preview_tier=simulated.tier,
            delta=simulated.score - current_score,
        )
