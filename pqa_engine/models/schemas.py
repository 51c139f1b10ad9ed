"""
Pydantic schemas for PQA Scoring Engine
"""

from enum import Enum
from typing import List, Dict, Optional, Any
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import date, datetime, timezone

from ..config.settings import DECAY_WINDOWS_DAYS, WILDCARD_SIGNAL_TYPE


def ensure_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC and normalise aware ones to UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CamelModel(BaseModel):
    """Models serialised with camelCase JSON names, populated by either name"""
    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# ENUMS
# =============================================================================

class ScoreTier(str, Enum):
    """Discrete account tier derived from the score"""
    HOT = "HOT"
    WARM = "WARM"
    COLD = "COLD"
    INACTIVE = "INACTIVE"


class ScoreTrend(str, Enum):
    """Direction of the score relative to the prior snapshot"""
    RISING = "RISING"
    STABLE = "STABLE"
    FALLING = "FALLING"


class DecayWindow(str, Enum):
    """Named time-decay windows for a rule"""
    NONE = "none"
    DAYS_7 = "7d"
    DAYS_14 = "14d"
    DAYS_30 = "30d"
    DAYS_90 = "90d"

    @property
    def days(self) -> Optional[int]:
        return DECAY_WINDOWS_DAYS[self.value]


class ConditionOperator(str, Enum):
    """Comparison operators for rule conditions"""
    GT = "gt"
    LT = "lt"
    EQ = "eq"
    CONTAINS = "contains"


# =============================================================================
# SIGNAL SCHEMAS
# =============================================================================

class Signal(CamelModel):
    """A behavioral event read from the signal store"""
    id: str
    type: str
    account_id: str = Field(alias="accountId")
    timestamp: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)
    actor_id: Optional[str] = Field(None, alias="actorId")

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


# =============================================================================
# SCORING CONFIG SCHEMAS
# =============================================================================

class ScoringCondition(CamelModel):
    """Compares signal.metadata[field] against value"""
    field: str
    operator: ConditionOperator
    value: Any = None


class ScoringRule(CamelModel):
    """A weighted, decaying rule matched against signals of one type"""
    id: str
    name: str
    description: str = ""
    signal_type: str = Field(WILDCARD_SIGNAL_TYPE, alias="signalType")
    weight: float
    decay: DecayWindow = DecayWindow.NONE
    conditions: List[ScoringCondition] = Field(default_factory=list)
    enabled: bool = True


class TierThresholds(CamelModel):
    """Lower bounds (inclusive) of each tier"""
    hot: float = Field(alias="HOT")
    warm: float = Field(alias="WARM")
    cold: float = Field(alias="COLD")


class ScoringConfig(CamelModel):
    """An organization's complete scoring configuration"""
    rules: List[ScoringRule] = Field(default_factory=list)
    tier_thresholds: TierThresholds = Field(alias="tierThresholds")
    max_score: float = Field(100, alias="maxScore")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "rules": [
                    {
                        "id": "page_views",
                        "name": "Page View",
                        "signalType": "page_view",
                        "weight": 10,
                        "decay": "30d",
                        "conditions": [],
                        "enabled": True,
                    }
                ],
                "tierThresholds": {"HOT": 70, "WARM": 40, "COLD": 10},
                "maxScore": 100,
            }
        },
    )


# =============================================================================
# SCORE SCHEMAS
# =============================================================================

class ScoreFactor(CamelModel):
    """One rule's aggregated contribution, kept for explainability"""
    rule_id: str = Field(alias="ruleId")
    name: str
    weight: float
    value: float
    description: str = ""
    signal_count: int = Field(0, alias="signalCount")


class AccountScore(CamelModel):
    """Snapshot of an account's score produced by a compute pass"""
    id: str
    account_id: str = Field(alias="accountId")
    score: float
    tier: ScoreTier
    factors: List[ScoreFactor] = Field(default_factory=list)
    signal_count: int = Field(0, alias="signalCount")
    user_count: int = Field(0, alias="userCount")
    last_signal_at: Optional[datetime] = Field(None, alias="lastSignalAt")
    trend: ScoreTrend = ScoreTrend.STABLE
    computed_at: datetime = Field(alias="computedAt")

    @field_validator("computed_at", "last_signal_at")
    @classmethod
    def _timestamps_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None


class ScorePreview(CamelModel):
    """Before/after comparison for one account under a candidate config"""
    account_id: str = Field(alias="accountId")
    current_score: float = Field(alias="currentScore")
    preview_score: float = Field(alias="previewScore")
    current_tier: ScoreTier = Field(alias="currentTier")
    preview_tier: ScoreTier = Field(alias="previewTier")
    delta: float = 0


class RecomputeResult(CamelModel):
    """Outcome of re-scoring every account in an organization"""
    updated: int
    config: ScoringConfig
    total: int = 0
    skipped: int = 0
    skipped_account_ids: List[str] = Field(default_factory=list, alias="skippedAccountIds")
    cancelled: bool = False


class ScoreHistoryPoint(CamelModel):
    """A single historical score for an account"""
    account_id: str = Field(alias="accountId")
    score: float
    tier: ScoreTier
    captured_at: datetime = Field(alias="capturedAt")


class OrgScorePoint(CamelModel):
    """Daily aggregate of all score snapshots in an organization"""
    day: date
    avg: float
    min: float
    max: float
    count: int


# =============================================================================
# API RESPONSE SCHEMAS
# =============================================================================

class PreviewResponse(CamelModel):
    previews: List[ScorePreview]


class TopAccountsResponse(CamelModel):
    accounts: List[AccountScore]


class ScoreHistoryResponse(CamelModel):
    data: List[ScoreHistoryPoint]
    account_id: str = Field(alias="accountId")
    days: int


class OrgOverviewResponse(CamelModel):
    data: List[OrgScorePoint]
    days: int
