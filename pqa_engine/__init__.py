"""
PQA Scoring Engine - Product-Qualified-Account Scoring
=======================================================
Turns behavioral signals into an account health score:
  Stage 1: Rule Evaluation (per-signal decayed contributions)
  Stage 2: Score Aggregation (bounded score, tier, factors)
  Stage 3: Trend Classification (against the prior snapshot)
"""

__version__ = "1.0.0"
__author__ = "PQA Scoring Team"
