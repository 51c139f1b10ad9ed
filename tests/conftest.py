"""Shared test fixtures for the PQA scoring engine.

Provides a fixed reference time, signal/config factories, and an engine
wired to in-memory stores with a controllable clock.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from pqa_engine.engine import PQAScoringEngine, create_engine
from pqa_engine.models.schemas import ScoringConfig, ScoringRule, Signal

ORG_ID = "org_test"
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class MutableClock:
    """Clock whose time tests can move forward"""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def org_id() -> str:
    return ORG_ID


@pytest.fixture
def make_signal():
    """Build a Signal aged `age_days` relative to NOW."""
    counter = {"n": 0}

    def _make(
        signal_type: str = "page_view",
        account_id: str = "acme",
        age_days: float = 0,
        metadata: dict | None = None,
        actor_id: str | None = None,
        signal_id: str | None = None,
    ) -> Signal:
        counter["n"] += 1
        return Signal(
            id=signal_id or f"sig_{counter['n']:04d}",
            type=signal_type,
            account_id=account_id,
            timestamp=NOW - timedelta(days=age_days),
            metadata=metadata or {},
            actor_id=actor_id,
        )

    return _make


@pytest.fixture
def page_view_rule() -> ScoringRule:
    return ScoringRule(
        id="page_views",
        name="Page View",
        signal_type="page_view",
        weight=10,
        decay="30d",
    )


@pytest.fixture
def page_view_config(page_view_rule) -> ScoringConfig:
    """One page_view rule, weight 10, 30d decay, thresholds 70/40/10."""
    return ScoringConfig(
        rules=[page_view_rule],
        tier_thresholds={"HOT": 70, "WARM": 40, "COLD": 10},
        max_score=100,
    )


@pytest.fixture
def page_view_config_dict() -> dict:
    return {
        "rules": [
            {
                "id": "page_views",
                "name": "Page View",
                "description": "",
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


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def engine(clock) -> PQAScoringEngine:
    """Engine over empty in-memory stores with ORG_ID registered."""
    return create_engine(organization_id=ORG_ID, clock=clock, max_workers=4)


@pytest.fixture
def seeded_engine(engine, make_signal) -> PQAScoringEngine:
    """Three accounts: acme (8 fresh page views), globex (2 old), initech (none)."""
    signals = [make_signal(account_id="acme", actor_id=f"u{i % 3}") for i in range(8)]
    signals += [make_signal(account_id="globex", age_days=15, actor_id="g1") for _ in range(2)]
    for account_id in ("acme", "globex", "initech"):
        engine.account_directory.add_account(ORG_ID, account_id)
    engine.signal_store.add_signals(ORG_ID, signals)
    return engine
