"""Tests for the scoring config manager and config validation."""

from __future__ import annotations

import copy

import pytest

from pqa_engine.config.settings import (
    DEFAULT_MAX_SCORE,
    DEFAULT_TIER_THRESHOLDS,
    SUPPORTED_SIGNAL_TYPES,
)
from pqa_engine.config_manager import ScoringConfigManager
from pqa_engine.errors import InvalidConfig, StoreUnavailable
from pqa_engine.models.schemas import ScoringConfig, ScoringRule
from pqa_engine.models.scoring_config import (
    create_default_scoring_config,
    parse_scoring_config,
    validate_scoring_config,
)
from pqa_engine.storage.memory import InMemoryConfigStore


class UnreachableConfigStore:
    def load(self, organization_id):
        raise ConnectionError("connection refused")

    def save(self, organization_id, config):
        raise TimeoutError("timed out")


@pytest.fixture
def store() -> InMemoryConfigStore:
    return InMemoryConfigStore()


@pytest.fixture
def manager(store) -> ScoringConfigManager:
    return ScoringConfigManager(store)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

class TestDefaults:
    def test_seeds_every_supported_signal_type(self):
        config = create_default_scoring_config()
        covered = {rule.signal_type for rule in config.rules}
        assert set(SUPPORTED_SIGNAL_TYPES) <= covered

    def test_default_thresholds_and_max(self):
        config = create_default_scoring_config()
        assert config.tier_thresholds.hot == DEFAULT_TIER_THRESHOLDS["HOT"]
        assert config.tier_thresholds.warm == DEFAULT_TIER_THRESHOLDS["WARM"]
        assert config.tier_thresholds.cold == DEFAULT_TIER_THRESHOLDS["COLD"]
        assert config.max_score == DEFAULT_MAX_SCORE

    def test_default_is_valid(self):
        assert validate_scoring_config(create_default_scoring_config()) == []

    def test_extra_rules_appended(self):
        config = create_default_scoring_config(
            extra_rules=[{"id": "x", "name": "X", "signalType": "page_view", "weight": 1}],
        )
        assert config.rules[-1].id == "x"


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------

class TestGetConfig:
    def test_unset_org_gets_default(self, manager):
        assert manager.get_config("org_new") == create_default_scoring_config()

    def test_returns_stored_config(self, manager, store, page_view_config):
        store.save("org_a", page_view_config)
        assert manager.get_config("org_a") == page_view_config

    def test_orgs_are_isolated(self, manager, page_view_config):
        manager.update_config("org_a", page_view_config)
        assert manager.get_config("org_b") == create_default_scoring_config()

    def test_store_outage(self):
        with pytest.raises(StoreUnavailable):
            ScoringConfigManager(UnreachableConfigStore()).get_config("org_a")


class TestUpdateConfig:
    def test_accepts_camel_case_document(self, manager, page_view_config_dict, page_view_config):
        saved = manager.update_config("org_a", page_view_config_dict)
        assert saved == page_view_config
        assert manager.get_config("org_a") == page_view_config

    def test_full_overwrite(self, manager, page_view_config):
        manager.update_config("org_a", create_default_scoring_config())
        manager.update_config("org_a", page_view_config)
        assert [r.id for r in manager.get_config("org_a").rules] == ["page_views"]

    def test_caller_mutation_does_not_leak(self, manager, page_view_config):
        manager.update_config("org_a", page_view_config)
        page_view_config.rules[0].weight = 99
        assert manager.get_config("org_a").rules[0].weight == 10

    @pytest.mark.parametrize(
        "thresholds",
        [
            {"HOT": 40, "WARM": 40, "COLD": 10},
            {"HOT": 30, "WARM": 40, "COLD": 10},
            {"HOT": 70, "WARM": 10, "COLD": 10},
            {"HOT": 70, "WARM": 40, "COLD": -1},
        ],
    )
    def test_rejects_bad_thresholds(self, manager, page_view_config_dict, thresholds):
        document = copy.deepcopy(page_view_config_dict)
        document["tierThresholds"] = thresholds
        with pytest.raises(InvalidConfig):
            manager.update_config("org_a", document)
        assert manager.get_config("org_a") == create_default_scoring_config()

    def test_rejects_unknown_decay(self, manager, page_view_config_dict):
        document = copy.deepcopy(page_view_config_dict)
        document["rules"][0]["decay"] = "60d"
        with pytest.raises(InvalidConfig) as exc_info:
            manager.update_config("org_a", document)
        assert any("decay" in error for error in exc_info.value.errors)

    def test_rejects_unknown_operator(self, manager, page_view_config_dict):
        document = copy.deepcopy(page_view_config_dict)
        document["rules"][0]["conditions"] = [{"field": "path", "operator": "regex", "value": "x"}]
        with pytest.raises(InvalidConfig):
            manager.update_config("org_a", document)

    @pytest.mark.parametrize("weight", [float("inf"), float("-inf"), float("nan")])
    def test_rejects_non_finite_weight(self, manager, page_view_config, weight):
        page_view_config.rules[0].weight = weight
        with pytest.raises(InvalidConfig) as exc_info:
            manager.update_config("org_a", page_view_config)
        assert "weight" in str(exc_info.value)

    def test_rejects_duplicate_rule_ids(self, manager, page_view_config, page_view_rule):
        page_view_config.rules.append(page_view_rule.model_copy())
        with pytest.raises(InvalidConfig):
            manager.update_config("org_a", page_view_config)

    @pytest.mark.parametrize("max_score", [0, -5, float("inf")])
    def test_rejects_bad_max_score(self, manager, page_view_config, max_score):
        page_view_config.max_score = max_score
        with pytest.raises(InvalidConfig):
            manager.update_config("org_a", page_view_config)

    def test_collects_every_problem(self):
        config = ScoringConfig(
            rules=[ScoringRule(id="a", name="A", weight=float("nan"))],
            tier_thresholds={"HOT": 10, "WARM": 20, "COLD": 30},
        )
        assert len(validate_scoring_config(config)) == 3

    def test_negative_weights_allowed(self, manager, page_view_config):
        page_view_config.rules[0].weight = -10
        assert manager.update_config("org_a", page_view_config).rules[0].weight == -10

    def test_store_outage(self, page_view_config):
        with pytest.raises(StoreUnavailable):
            ScoringConfigManager(UnreachableConfigStore()).update_config("org_a", page_view_config)


class TestValidateOnly:
    def test_returns_parsed_config_without_storing(self, manager, page_view_config_dict, page_view_config):
        assert manager.validate_config("org_a", page_view_config_dict) == page_view_config
        assert manager.get_config("org_a") == create_default_scoring_config()

    def test_rejects_empty_document(self, manager):
        with pytest.raises(InvalidConfig):
            manager.validate_config("org_a", {})


class TestReset:
    def test_restores_defaults(self, manager, page_view_config):
        manager.update_config("org_a", page_view_config)
        assert manager.reset("org_a") == create_default_scoring_config()
        assert manager.get_config("org_a") == create_default_scoring_config()


class TestParse:
    def test_returns_independent_copy(self, page_view_config):
        parsed = parse_scoring_config(page_view_config)
        assert parsed == page_view_config
        assert parsed is not page_view_config

    def test_missing_fields(self):
        with pytest.raises(InvalidConfig) as exc_info:
            parse_scoring_config({"rules": []})
        assert any("tierThresholds" in error for error in exc_info.value.errors)
