# Scoring stages module
from .stage1_evaluator import RuleEvaluator
from .stage2_aggregator import ScoreAggregator, compute_tier, score_id_for
from .stage3_trend import TrendCalculator
