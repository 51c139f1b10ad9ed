"""
Stage 1: Rule Evaluation
========================
Decides whether a single rule matches a single signal and what decayed
contribution it yields at a reference time.

Matching:
- Rule must be enabled
- Signal type must equal the rule's signal type ("*" matches any)
- Every condition (AND-combined) must hold against signal.metadata

Decay:
- none: full weight regardless of age
- Nd:   linear decay from full weight at age 0 to zero at N days

Bad metadata never raises here; a comparison that cannot be made fails the
condition and the rule contributes nothing.
"""

import math
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from ..models.schemas import (
    ConditionOperator,
    DecayWindow,
    ScoringCondition,
    ScoringRule,
    Signal,
    ensure_utc,
)
from ..config.settings import WILDCARD_SIGNAL_TYPE

SECONDS_PER_DAY = 24 * 60 * 60


# =============================================================================
# Operand coercion
# =============================================================================

def _as_number(value: Any) -> Optional[float]:
    """Numeric view of a value, or None. Booleans are not numbers here."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _as_text(value: Any) -> Optional[str]:
    """Text view of a scalar value, or None for containers/objects"""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        try:
            return str(value)
        except ValueError:
            # int exceeds the interpreter's str-conversion digit limit
            return None
    return None


# =============================================================================
# Operators
# =============================================================================

def _greater_than(actual: Any, expected: Any) -> bool:
    a, b = _as_number(actual), _as_number(expected)
    return a is not None and b is not None and a > b


def _less_than(actual: Any, expected: Any) -> bool:
    a, b = _as_number(actual), _as_number(expected)
    return a is not None and b is not None and a < b


def _equals(actual: Any, expected: Any) -> bool:
    a, b = _as_number(actual), _as_number(expected)
    if a is not None and b is not None:
        return a == b
    a_text, b_text = _as_text(actual), _as_text(expected)
    return a_text is not None and b_text is not None and a_text == b_text


def _contains(actual: Any, expected: Any) -> bool:
    needle = _as_text(expected)
    if needle is None:
        return False
    if isinstance(actual, str):
        return needle.lower() in actual.lower()
    if isinstance(actual, (list, tuple, set, frozenset)):
        return any(_as_text(item) == needle for item in actual)
    return False


OPERATORS: Dict[ConditionOperator, Callable[[Any, Any], bool]] = {
    ConditionOperator.GT: _greater_than,
    ConditionOperator.LT: _less_than,
    ConditionOperator.EQ: _equals,
    ConditionOperator.CONTAINS: _contains,
}


class RuleEvaluator:
    """
    Stage 1: Evaluate a rule against a signal. Pure; holds no state.
    """

    def evaluate(
        self,
        rule: ScoringRule,
        signal: Signal,
        reference_time: datetime,
    ) -> float:
        """
        Compute a rule's contribution for one signal.

        Args:
            rule: Scoring rule to apply
            signal: Signal to evaluate
            reference_time: Time the score is computed "as of"

        Returns:
            weight * decay factor, or 0.0 if the rule does not match
        """
        if not self.matches(rule, signal):
            return 0.0

        age_days = self.age_in_days(signal.timestamp, reference_time)
        return rule.weight * self.decay_factor(rule.decay, age_days)

    def matches(self, rule: ScoringRule, signal: Signal) -> bool:
        """Check enabled flag, signal type, and all conditions"""
        if not rule.enabled:
            return False
        if rule.signal_type != WILDCARD_SIGNAL_TYPE and rule.signal_type != signal.type:
            return False
        return all(self.check_condition(c, signal.metadata) for c in rule.conditions)

    def check_condition(self, condition: ScoringCondition, metadata: Dict[str, Any]) -> bool:
        """A missing field or an incomparable value fails the condition"""
        if not isinstance(metadata, dict) or condition.field not in metadata:
            return False
        compare = OPERATORS.get(condition.operator)
        if compare is None:
            return False
        return compare(metadata[condition.field], condition.value)

    @staticmethod
    def age_in_days(timestamp: datetime, reference_time: datetime) -> float:
        """Signal age in days; future timestamps count as age 0"""
        delta = ensure_utc(reference_time) - ensure_utc(timestamp)
        return max(0.0, delta.total_seconds() / SECONDS_PER_DAY)

    @staticmethod
    def decay_factor(decay: DecayWindow, age_days: float) -> float:
        """Linear decay: 1.0 at age 0, 0.0 at and beyond the window edge"""
        window = decay.days
        if window is None:
            return 1.0
        if age_days >= window:
            return 0.0
        return max(0.0, 1.0 - age_days / window)
