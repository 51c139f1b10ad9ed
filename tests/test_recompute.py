"""Tests for pqa_engine.recompute: bulk and single-account re-scoring."""

from __future__ import annotations

import threading

import pytest

from pqa_engine.config_manager import ScoringConfigManager
from pqa_engine.errors import InvalidConfig, NotFound, StoreUnavailable
from pqa_engine.models.schemas import DecayWindow, ScoreTier, ScoreTrend, ScoringCondition, ScoringRule
from pqa_engine.models.scoring_config import create_default_scoring_config
from pqa_engine.recompute import RecomputeOrchestrator, resolve_max_workers
from pqa_engine.storage.memory import (
    InMemoryAccountDirectory,
    InMemoryAccountScoreStore,
    InMemoryConfigStore,
    InMemorySignalStore,
)

ORG = "org_test"


class CountingConfigStore(InMemoryConfigStore):
    def __init__(self):
        super().__init__()
        self.loads = 0

    def load(self, organization_id):
        self.loads += 1
        return super().load(organization_id)


class CorruptSignalStore(InMemorySignalStore):
    """Fails to decode the signals of selected accounts."""

    def __init__(self, corrupt_accounts):
        super().__init__()
        self.corrupt_accounts = set(corrupt_accounts)

    def list_signals_for_account(self, organization_id, account_id, since=None):
        if account_id in self.corrupt_accounts:
            raise ValueError(f"malformed metadata for {account_id}")
        return super().list_signals_for_account(organization_id, account_id, since)


class UnreachableSignalStore(InMemorySignalStore):
    def list_signals_for_account(self, organization_id, account_id, since=None):
        raise ConnectionError("signal store down")


class OverflowingSignalStore(InMemorySignalStore):
    def list_signals_for_account(self, organization_id, account_id, since=None):
        if account_id == "globex":
            raise OverflowError("timestamp out of range")
        return super().list_signals_for_account(organization_id, account_id, since)


class UnreachableAccountDirectory(InMemoryAccountDirectory):
    def list_account_ids(self, organization_id):
        raise TimeoutError("directory timed out")


class CancellingSignalStore(InMemorySignalStore):
    """Sets the cancel event as soon as the first account is read."""

    def __init__(self, cancel_event):
        super().__init__()
        self.cancel_event = cancel_event

    def list_signals_for_account(self, organization_id, account_id, since=None):
        self.cancel_event.set()
        return super().list_signals_for_account(organization_id, account_id, since)


def _orchestrator(signal_store=None, config_store=None, accounts=("acme", "globex", "initech"),
                  clock=None, max_workers=4):
    directory = InMemoryAccountDirectory()
    directory.add_organization(ORG)
    for account_id in accounts:
        directory.add_account(ORG, account_id)
    config_store = config_store or InMemoryConfigStore()
    kwargs = {"clock": clock} if clock else {}
    return RecomputeOrchestrator(
        ScoringConfigManager(config_store),
        signal_store or InMemorySignalStore(),
        directory,
        InMemoryAccountScoreStore(),
        max_workers=max_workers,
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Bulk recompute
# ---------------------------------------------------------------------------

class TestRecompute:
    def test_scores_every_account(self, seeded_engine, page_view_config):
        seeded_engine.update_config(ORG, page_view_config)
        result = seeded_engine.recompute(ORG)

        assert result.updated == 3
        assert result.total == 3
        assert result.skipped == 0
        assert result.cancelled is False
        assert result.config == page_view_config

        acme = seeded_engine.get_account_score(ORG, "acme")
        assert acme.score == 80
        assert acme.tier == ScoreTier.HOT
        assert acme.trend == ScoreTrend.STABLE
        assert acme.user_count == 3

        globex = seeded_engine.get_account_score(ORG, "globex")
        assert globex.score == pytest.approx(10.0)
        assert globex.tier == ScoreTier.COLD

    def test_empty_account_first_compute(self, seeded_engine, page_view_config):
        seeded_engine.recompute(ORG, page_view_config)
        initech = seeded_engine.get_account_score(ORG, "initech")
        assert initech.score == 0
        assert initech.tier == ScoreTier.INACTIVE
        assert initech.factors == []
        assert initech.trend == ScoreTrend.STABLE

    def test_with_config_stores_it(self, seeded_engine, page_view_config_dict, page_view_config):
        result = seeded_engine.recompute(ORG, page_view_config_dict)
        assert result.config == page_view_config
        assert seeded_engine.get_config(ORG) == page_view_config

    def test_invalid_config_writes_nothing(self, seeded_engine, page_view_config_dict):
        page_view_config_dict["tierThresholds"] = {"HOT": 10, "WARM": 40, "COLD": 70}
        with pytest.raises(InvalidConfig):
            seeded_engine.recompute(ORG, page_view_config_dict)
        assert seeded_engine.score_store.list_latest(ORG) == []
        assert seeded_engine.get_config(ORG) == create_default_scoring_config()

    def test_idempotent(self, seeded_engine, page_view_config):
        seeded_engine.recompute(ORG, page_view_config)
        first = {s.account_id: s.model_dump() for s in seeded_engine.score_store.list_latest(ORG)}
        seeded_engine.recompute(ORG)
        second = {s.account_id: s.model_dump() for s in seeded_engine.score_store.list_latest(ORG)}
        assert first == second

    def test_idempotent_apart_from_computed_at(self, seeded_engine, clock):
        config = create_default_scoring_config()
        for rule in config.rules:
            rule.decay = DecayWindow.NONE
        seeded_engine.recompute(ORG, config)
        first = {s.account_id: s.model_dump(exclude={"computed_at"}) for s in seeded_engine.score_store.list_latest(ORG)}
        clock.advance(hours=6)
        seeded_engine.recompute(ORG)
        second = {s.account_id: s.model_dump(exclude={"computed_at"}) for s in seeded_engine.score_store.list_latest(ORG)}
        assert first == second

    def test_trend_against_previous_snapshot(self, seeded_engine, page_view_config, make_signal, clock):
        seeded_engine.recompute(ORG, page_view_config)
        seeded_engine.signal_store.add_signals(ORG, [make_signal(account_id="globex") for _ in range(3)])
        clock.advance(days=1)
        seeded_engine.recompute(ORG)

        assert seeded_engine.get_account_score(ORG, "globex").trend == ScoreTrend.RISING
        # acme decayed by 1/30 of its weight: 80 -> 77.33, a 3.3% drop
        assert seeded_engine.get_account_score(ORG, "acme").trend == ScoreTrend.STABLE

        clock.advance(days=10)
        seeded_engine.recompute(ORG)
        assert seeded_engine.get_account_score(ORG, "acme").trend == ScoreTrend.FALLING

    def test_unknown_organization(self, engine):
        with pytest.raises(NotFound):
            engine.recompute("org_missing")

    def test_unknown_organization_keeps_previous_config(self, engine, page_view_config):
        with pytest.raises(NotFound):
            engine.recompute("org_missing", page_view_config)
        assert engine.get_config("org_missing") == create_default_scoring_config()

    def test_directory_outage_keeps_previous_config(self, page_view_config):
        config_store = InMemoryConfigStore()
        orchestrator = _orchestrator(config_store=config_store)
        orchestrator.account_directory = UnreachableAccountDirectory()
        with pytest.raises(StoreUnavailable):
            orchestrator.recompute(ORG, page_view_config)
        assert config_store.load(ORG) is None

    def test_reads_config_once_per_run(self):
        config_store = CountingConfigStore()
        orchestrator = _orchestrator(config_store=config_store, accounts=[f"a{i}" for i in range(10)])
        orchestrator.recompute(ORG)
        assert config_store.loads == 1


# ---------------------------------------------------------------------------
# Failures & cancellation
# ---------------------------------------------------------------------------

class TestPartialFailure:
    def test_bad_account_is_skipped(self):
        orchestrator = _orchestrator(signal_store=CorruptSignalStore(["globex"]))
        result = orchestrator.recompute(ORG)

        assert result.updated == 2
        assert result.skipped == 1
        assert result.skipped_account_ids == ["globex"]
        assert orchestrator.score_store.load_latest(ORG, "globex") is None
        assert orchestrator.score_store.load_latest(ORG, "acme") is not None

    def test_arithmetic_error_is_skipped(self):
        orchestrator = _orchestrator(signal_store=OverflowingSignalStore())
        result = orchestrator.recompute(ORG)
        assert result.updated == 2
        assert result.skipped_account_ids == ["globex"]

    def test_oversized_metadata_number_is_scored(self, seeded_engine, page_view_config, make_signal):
        page_view_config.rules.append(ScoringRule(
            id="big_number",
            name="Big number",
            signal_type="page_view",
            weight=5,
            decay="none",
            conditions=[ScoringCondition(field="n", operator="gt", value=5)],
        ))
        seeded_engine.signal_store.add_signals(ORG, [make_signal(account_id="globex", metadata={"n": 10**400})])

        result = seeded_engine.recompute(ORG, page_view_config)

        assert result.updated == 3
        assert result.skipped_account_ids == []
        # two 15-day-old views at half weight plus one fresh view; the condition never matches
        assert seeded_engine.get_account_score(ORG, "globex").score == pytest.approx(20.0)

    def test_store_outage_propagates(self):
        orchestrator = _orchestrator(signal_store=UnreachableSignalStore())
        with pytest.raises(StoreUnavailable):
            orchestrator.recompute(ORG)


class TestCancellation:
    def test_cancelled_before_start(self):
        orchestrator = _orchestrator()
        cancel = threading.Event()
        cancel.set()
        result = orchestrator.recompute(ORG, cancel_event=cancel)
        assert result.updated == 0
        assert result.total == 3
        assert result.cancelled is True
        assert orchestrator.score_store.list_latest(ORG) == []

    def test_cancelled_mid_run_keeps_written_rows(self):
        cancel = threading.Event()
        orchestrator = _orchestrator(signal_store=CancellingSignalStore(cancel), max_workers=1)
        result = orchestrator.recompute(ORG, cancel_event=cancel)
        assert result.updated == 1
        assert result.cancelled is True
        assert [s.account_id for s in orchestrator.score_store.list_latest(ORG)] == ["acme"]


# ---------------------------------------------------------------------------
# Single account
# ---------------------------------------------------------------------------

class TestComputeAccount:
    def test_computes_and_stores(self, seeded_engine, page_view_config):
        seeded_engine.update_config(ORG, page_view_config)
        score = seeded_engine.compute_account(ORG, "acme")
        assert score.score == 80
        assert seeded_engine.get_account_score(ORG, "acme") == score
        assert seeded_engine.score_store.load_latest(ORG, "globex") is None

    def test_unknown_account(self, seeded_engine):
        with pytest.raises(NotFound):
            seeded_engine.compute_account(ORG, "nobody")

    def test_matches_bulk_result(self, seeded_engine, page_view_config):
        seeded_engine.recompute(ORG, page_view_config)
        bulk = seeded_engine.get_account_score(ORG, "acme")
        single = seeded_engine.compute_account(ORG, "acme")
        assert single.model_dump() == bulk.model_dump()


class TestWorkers:
    @pytest.mark.parametrize("requested, expected", [(0, 1), (8, 8), (500, 64)])
    def test_pool_size_clamped(self, requested, expected):
        assert resolve_max_workers(requested) == expected
