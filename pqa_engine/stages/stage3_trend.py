"""
Stage 3: Trend Classification
=============================
Compares the current score with the previously stored one.

    change = (current - previous) / max(previous, 1)

|change| within the stable band (inclusive) is STABLE, otherwise RISING or
FALLING. Accounts without a prior snapshot start STABLE.
"""

import math
from typing import Optional

from ..models.schemas import ScoreTrend
from ..config.settings import ENGINE_CONFIG

DEFAULT_STABLE_BAND = 0.05


class TrendCalculator:
    """
    Stage 3: Classify score movement between snapshots.
    """

    def __init__(self, stable_band: Optional[float] = None):
        """
        Args:
            stable_band: Relative change treated as noise (default from ENGINE_CONFIG)
        """
        if stable_band is None:
            stable_band = ENGINE_CONFIG.get("trend_stable_band", DEFAULT_STABLE_BAND)
        if not math.isfinite(stable_band) or stable_band < 0:
            raise ValueError(f"stable_band must be a non-negative number, got {stable_band!r}")
        self.stable_band = stable_band

    def trend(self, previous_score: Optional[float], current_score: float) -> ScoreTrend:
        """Classify the move from previous_score to current_score"""
        if previous_score is None:
            return ScoreTrend.STABLE
        if not (math.isfinite(previous_score) and math.isfinite(current_score)):
            return ScoreTrend.STABLE

        change = (current_score - previous_score) / max(previous_score, 1)
        if abs(change) <= self.stable_band:
            return ScoreTrend.STABLE
        return ScoreTrend.RISING if change > 0 else ScoreTrend.FALLING
