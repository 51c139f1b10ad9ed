"""
Scoring Configuration Factory & Validation
"""

import math
from typing import List, Dict, Optional, Any, Union

from pydantic import ValidationError

from .schemas import ScoringConfig, ScoringRule, TierThresholds
from ..config.settings import (
    DEFAULT_RULES,
    DEFAULT_TIER_THRESHOLDS,
    DEFAULT_MAX_SCORE,
)
from ..errors import InvalidConfig


def create_default_scoring_config(
    extra_rules: Optional[List[Dict[str, Any]]] = None,
    tier_thresholds: Optional[Dict[str, float]] = None,
    max_score: Optional[float] = None,
) -> ScoringConfig:
    """
    Factory function to create the platform default scoring config.

    Seeds one rule per supported signal type so a fresh organization
    produces non-trivial scores.
    """
    rules = [ScoringRule(**rule) for rule in DEFAULT_RULES]
    if extra_rules:
        rules.extend(ScoringRule(**rule) for rule in extra_rules)

    return ScoringConfig(
        rules=rules,
        tier_thresholds=TierThresholds(**(tier_thresholds or DEFAULT_TIER_THRESHOLDS)),
        max_score=max_score if max_score is not None else DEFAULT_MAX_SCORE,
    )


def validate_scoring_config(config: ScoringConfig) -> List[str]:
    """Return a list of problems with the config (empty when valid)"""
    errors = []

    thresholds = config.tier_thresholds
    values = {"HOT": thresholds.hot, "WARM": thresholds.warm, "COLD": thresholds.cold}
    for name, value in values.items():
        if not math.isfinite(value):
            errors.append(f"{name} threshold must be a finite number")

    if not errors:
        if thresholds.hot <= thresholds.warm:
            errors.append("HOT threshold must be greater than WARM threshold")
        if thresholds.warm <= thresholds.cold:
            errors.append("WARM threshold must be greater than COLD threshold")
        if thresholds.cold < 0:
            errors.append("COLD threshold must not be negative")

    if not math.isfinite(config.max_score) or config.max_score <= 0:
        errors.append("maxScore must be a finite number greater than 0")

    seen_ids = set()
    for rule in config.rules:
        if not math.isfinite(rule.weight):
            errors.append(f"Rule '{rule.id}' weight must be a finite number")
        if rule.id in seen_ids:
            errors.append(f"Duplicate rule id '{rule.id}'")
        seen_ids.add(rule.id)

    return errors


def parse_scoring_config(data: Union[ScoringConfig, Dict[str, Any]]) -> ScoringConfig:
    """
    Coerce and validate a scoring config.

    Args:
        data: A ScoringConfig or a raw (JSON-shaped) mapping

    Returns:
        An independent, validated copy of the config

    Raises:
        InvalidConfig: if the document is malformed or violates an invariant
    """
    if isinstance(data, ScoringConfig):
        config = data.model_copy(deep=True)
    else:
        try:
            config = ScoringConfig.model_validate(data)
        except ValidationError as e:
            raise InvalidConfig([
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            ]) from e

    errors = validate_scoring_config(config)
    if errors:
        raise InvalidConfig(errors)
    return config
