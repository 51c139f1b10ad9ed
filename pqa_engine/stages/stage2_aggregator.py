"""
Stage 2: Score Aggregation
==========================
Combines every rule contribution for one account into a bounded score,
a tier, and an explainability breakdown.

    score = clamp( sum over (rule, signal) of evaluate(rule, signal), 0, maxScore )

Factors are reported per rule, largest absolute contribution first, ties
broken by rule id, so the same inputs always yield the same breakdown.
"""

import math
import uuid
from datetime import datetime
from typing import Iterable, List, Optional

from ..models.schemas import (
    AccountScore,
    ScoreFactor,
    ScoreTier,
    ScoreTrend,
    ScoringConfig,
    ScoringRule,
    Signal,
    TierThresholds,
    ensure_utc,
)
from ..config.settings import WILDCARD_SIGNAL_TYPE
from .stage1_evaluator import RuleEvaluator

SCORE_ID_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "pqa-engine/account-score")


def compute_tier(score: float, thresholds: TierThresholds) -> ScoreTier:
    """Map a score to a tier; each threshold is inclusive for its tier"""
    if score >= thresholds.hot:
        return ScoreTier.HOT
    if score >= thresholds.warm:
        return ScoreTier.WARM
    if score >= thresholds.cold:
        return ScoreTier.COLD
    return ScoreTier.INACTIVE


def score_id_for(account_id: str, organization_id: Optional[str] = None) -> str:
    """Stable AccountScore id so recomputes overwrite the same row"""
    key = f"{organization_id or ''}:{account_id}"
    return str(uuid.uuid5(SCORE_ID_NAMESPACE, key))


class ScoreAggregator:
    """
    Stage 2: Aggregate rule contributions for one account.
    """

    def __init__(self, evaluator: Optional[RuleEvaluator] = None):
        self.evaluator = evaluator or RuleEvaluator()

    def aggregate(
        self,
        account_id: str,
        signals: Iterable[Signal],
        config: ScoringConfig,
        reference_time: datetime,
        score_id: Optional[str] = None,
    ) -> AccountScore:
        """
        Score one account under a config.

        Args:
            account_id: Account being scored
            signals: Signals for the account (others are ignored)
            config: Scoring config to apply
            reference_time: Time the score is computed "as of"
            score_id: Id for the resulting snapshot (derived from account_id if omitted)

        Returns:
            AccountScore with score, tier and factors. Trend is left STABLE;
            it is assigned against the prior snapshot when persisted.
        """
        reference_time = ensure_utc(reference_time)
        account_signals = sorted(
            (s for s in signals if s.account_id == account_id),
            key=lambda s: (s.timestamp, s.id),
        )

        factors: List[ScoreFactor] = []
        total = 0.0
        for rule in config.rules:
            if not rule.enabled:
                continue
            value = 0.0
            matched = 0
            for signal in account_signals:
                if not self.evaluator.matches(rule, signal):
                    continue
                matched += 1
                value += self.evaluator.evaluate(rule, signal, reference_time)
            if matched == 0:
                continue
            total += value
            factors.append(ScoreFactor(
                rule_id=rule.id,
                name=rule.name,
                weight=rule.weight,
                value=value,
                description=self._describe(rule, matched),
                signal_count=matched,
            ))

        factors.sort(key=lambda f: (-abs(f.value), f.rule_id))

        score = self._clamp(total, config.max_score)
        actors = {s.actor_id for s in account_signals if s.actor_id}
        # sorted by timestamp, so the last signal is the most recent
        last_signal_at = account_signals[-1].timestamp if account_signals else None

        return AccountScore(
            id=score_id or score_id_for(account_id),
            account_id=account_id,
            score=score,
            tier=compute_tier(score, config.tier_thresholds),
            factors=factors,
            signal_count=len(account_signals),
            user_count=len(actors),
            last_signal_at=last_signal_at,
            trend=ScoreTrend.STABLE,
            computed_at=reference_time,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _clamp(total: float, max_score: float) -> float:
        if math.isnan(total) or total <= 0:
            return 0.0
        return min(total, max_score)

    @staticmethod
    def _describe(rule: ScoringRule, matched: int) -> str:
        signal_type = "any" if rule.signal_type == WILDCARD_SIGNAL_TYPE else rule.signal_type
        plural = "" if matched == 1 else "s"
        text = f"{matched} {signal_type} signal{plural}, weight {rule.weight:g}, decay {rule.decay.value}"
        if rule.description:
            text = f"{rule.description} ({text})"
        return text
