"""
PQA Scoring Engine - Main Orchestrator
======================================
Single entry point wiring the stores to the scoring services:
  Config Manager → Preview (dry run) / Recompute (persisted) → Score queries

The engine object holds no per-organization state; everything lives in the
stores it is given.
"""

import threading
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Union

from .config.settings import API_CONFIG
from .config_manager import ScoringConfigManager
from .errors import NotFound
from .logging_config import get_logger
from .models.schemas import (
    AccountScore,
    OrgScorePoint,
    RecomputeResult,
    ScoreHistoryPoint,
    ScorePreview,
    ScoreTier,
    ScoringConfig,
    Signal,
)
from .models.scoring_config import create_default_scoring_config
from .preview import PreviewService
from .recompute import RecomputeOrchestrator, utc_now
from .stages.stage2_aggregator import ScoreAggregator
from .stages.stage3_trend import TrendCalculator
from .storage.interfaces import (
    AccountDirectory,
    AccountScoreStore,
    ConfigStore,
    SignalStore,
    call_store,
)
from .storage.memory import (
    InMemoryAccountDirectory,
    InMemoryAccountScoreStore,
    InMemoryConfigStore,
    InMemorySignalStore,
)

logger = get_logger(__name__)


class PQAScoringEngine:
    """
    Facade over config management, preview, recompute and score queries.
    """

    def __init__(
        self,
        signal_store: SignalStore,
        account_directory: AccountDirectory,
        config_store: ConfigStore,
        score_store: AccountScoreStore,
        max_workers: Optional[int] = None,
        trend_stable_band: Optional[float] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the scoring engine.

        Args:
            signal_store: Read-only source of signals
            account_directory: Lists each organization's accounts
            config_store: Persists one ScoringConfig per organization
            score_store: Persists AccountScore snapshots
            max_workers: Pool size for recompute/preview (ENGINE_CONFIG default)
            trend_stable_band: Relative change treated as STABLE (ENGINE_CONFIG default)
            clock: Reference time source
        """
        self.signal_store = signal_store
        self.account_directory = account_directory
        self.config_store = config_store
        self.score_store = score_store
        self.clock = clock

        aggregator = ScoreAggregator()
        self.config_manager = ScoringConfigManager(config_store)
        self.previewer = PreviewService(
            signal_store,
            account_directory,
            score_store,
            aggregator=aggregator,
            max_workers=max_workers,
            clock=clock,
        )
        self.orchestrator = RecomputeOrchestrator(
            self.config_manager,
            signal_store,
            account_directory,
            score_store,
            aggregator=aggregator,
            trend_calculator=TrendCalculator(trend_stable_band),
            max_workers=max_workers,
            clock=clock,
        )

    # =========================================================================
    # Configuration
    # =========================================================================

    def get_config(self, organization_id: str) -> ScoringConfig:
        return self.config_manager.get_config(organization_id)

    def update_config(
        self,
        organization_id: str,
        config: Union[ScoringConfig, Dict[str, Any]],
    ) -> ScoringConfig:
        return self.config_manager.update_config(organization_id, config)

    def reset_config(self, organization_id: str) -> ScoringConfig:
        """Restore platform defaults and re-score every account under them"""
        result = self.orchestrator.recompute(organization_id, create_default_scoring_config())
        logger.info("Scoring config reset to defaults for org %s", organization_id)
        return result.config

    # =========================================================================
    # Scoring
    # =========================================================================

    def preview(
        self,
        organization_id: str,
        candidate: Union[ScoringConfig, Dict[str, Any]],
    ) -> List[ScorePreview]:
        return self.previewer.preview(organization_id, candidate)

    def recompute(
        self,
        organization_id: str,
        config: Optional[Union[ScoringConfig, Dict[str, Any]]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> RecomputeResult:
        return self.orchestrator.recompute(organization_id, config, cancel_event)

    def compute_account(self, organization_id: str, account_id: str) -> AccountScore:
        return self.orchestrator.compute_account(organization_id, account_id)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_account_score(self, organization_id: str, account_id: str) -> AccountScore:
        """Latest stored score for an account"""
        score = call_store(
            "score store", self.score_store.load_latest, organization_id, account_id
        )
        if score is None:
            raise NotFound("AccountScore", account_id)
        return score

    def top_accounts(
        self,
        organization_id: str,
        tier: Optional[ScoreTier] = None,
        limit: int = API_CONFIG["default_top_limit"],
    ) -> List[AccountScore]:
        """
        Highest-scoring accounts, optionally restricted to one tier.

        Args:
            organization_id: Organization to query
            tier: Only return accounts in this tier
            limit: Maximum number of accounts (clamped to 1..max_top_limit)
        """
        limit = max(1, min(API_CONFIG["max_top_limit"], limit))
        scores = call_store("score store", self.score_store.list_latest, organization_id)
        if tier is not None:
            scores = [s for s in scores if s.tier == tier]
        scores.sort(key=lambda s: (-s.score, s.account_id))
        return scores[:limit]

    def score_history(
        self,
        organization_id: str,
        account_id: str,
        days: int = API_CONFIG["default_history_days"],
    ) -> List[ScoreHistoryPoint]:
        """Chronological score snapshots of one account within the last `days` days"""
        since = self.clock() - timedelta(days=days)
        snapshots = call_store(
            "score store", self.score_store.list_history, organization_id, account_id, since
        )
        return [
            ScoreHistoryPoint(
                account_id=s.account_id,
                score=s.score,
                tier=s.tier,
                captured_at=s.computed_at,
            )
            for s in snapshots
        ]

    def org_score_overview(
        self,
        organization_id: str,
        days: int = API_CONFIG["default_history_days"],
    ) -> List[OrgScorePoint]:
        """Per-day average/min/max of every snapshot in the organization"""
        since = self.clock() - timedelta(days=days)
        snapshots = call_store(
            "score store", self.score_store.list_history, organization_id, None, since
        )

        by_day: Dict[date, List[float]] = defaultdict(list)
        for snapshot in snapshots:
            by_day[snapshot.computed_at.date()].append(snapshot.score)

        return [
            OrgScorePoint(
                day=day,
                avg=round(sum(scores) / len(scores), 2),
                min=min(scores),
                max=max(scores),
                count=len(scores),
            )
            for day, scores in sorted(by_day.items())
        ]


# =============================================================================
# Convenience Functions
# =============================================================================

def create_engine(
    organization_id: Optional[str] = None,
    account_ids: Optional[List[str]] = None,
    signals: Optional[List[Union[Signal, Dict[str, Any]]]] = None,
    **kwargs,
) -> PQAScoringEngine:
    """
    Factory function to create an engine backed by in-memory stores.

    Args:
        organization_id: Organization to seed (optional)
        account_ids: Accounts to register for that organization
        signals: Signals to load for that organization
        **kwargs: Passed through to PQAScoringEngine

    Returns:
        Configured PQAScoringEngine instance
    """
    directory = InMemoryAccountDirectory()
    signal_store = InMemorySignalStore()

    if organization_id is not None:
        directory.add_organization(organization_id)
        for account_id in account_ids or []:
            directory.add_account(organization_id, account_id)
        if signals:
            parsed = [s if isinstance(s, Signal) else Signal.model_validate(s) for s in signals]
            for signal in parsed:
                directory.add_account(organization_id, signal.account_id)
            signal_store.add_signals(organization_id, parsed)

    return PQAScoringEngine(
        signal_store=signal_store,
        account_directory=directory,
        config_store=InMemoryConfigStore(),
        score_store=InMemoryAccountScoreStore(),
        **kwargs,
    )
