"""
Configuration settings for PQA Scoring Engine
"""

from typing import Dict, List, Any, Optional
import os


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _optional_int_env(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else None


# =============================================================================
# ENGINE CONFIGURATION
# =============================================================================

MIN_WORKERS = 1
MAX_WORKERS = 64

ENGINE_CONFIG = {
    # Bounded pool size for recompute/preview fan-out across accounts.
    "max_workers": max(MIN_WORKERS, min(MAX_WORKERS, _int_env("PQA_MAX_WORKERS", 16))),
    # |relative change| at or below this band is STABLE.
    "trend_stable_band": float(os.getenv("PQA_TREND_STABLE_BAND", "0.05")),
    # Only signals newer than this many days are loaded (None = all).
    "signal_lookback_days": _optional_int_env("PQA_SIGNAL_LOOKBACK_DAYS"),
}

# =============================================================================
# API CONFIGURATION
# =============================================================================

API_CONFIG = {
    "allowed_origins": [
        origin.strip()
        for origin in os.getenv("PQA_ALLOWED_ORIGINS", "*").split(",")
        if origin.strip()
    ],
    "default_top_limit": 20,
    "max_top_limit": 100,
    "default_history_days": 30,
}

# =============================================================================
# DECAY WINDOWS
# =============================================================================

DECAY_WINDOWS_DAYS = {
    "none": None,
    "7d": 7,
    "14d": 14,
    "30d": 30,
    "90d": 90,
}

# =============================================================================
# SIGNAL TYPES
# =============================================================================

WILDCARD_SIGNAL_TYPE = "*"

SUPPORTED_SIGNAL_TYPES = [
    "npm_download",
    "pypi_download",
    "github_star",
    "github_fork",
    "github_issue",
    "github_pr",
    "api_call",
    "page_view",
    "docs_view",
    "signup",
    "feature_usage",
    "support_ticket",
]

# =============================================================================
# DEFAULT SCORING RULES
# =============================================================================

DEFAULT_RULES: List[Dict[str, Any]] = [
    {
        "id": "default_signup",
        "name": "Signup",
        "description": "New user signed up from the account",
        "signalType": "signup",
        "weight": 15,
        "decay": "90d",
    },
    {
        "id": "default_github_pr",
        "name": "GitHub Pull Request",
        "description": "Pull request opened against a public repository",
        "signalType": "github_pr",
        "weight": 8,
        "decay": "30d",
    },
    {
        "id": "default_github_issue",
        "name": "GitHub Issue",
        "description": "Issue opened against a public repository",
        "signalType": "github_issue",
        "weight": 5,
        "decay": "30d",
    },
    {
        "id": "default_github_fork",
        "name": "GitHub Fork",
        "description": "Repository forked",
        "signalType": "github_fork",
        "weight": 4,
        "decay": "90d",
    },
    {
        "id": "default_github_star",
        "name": "GitHub Star",
        "description": "Repository starred",
        "signalType": "github_star",
        "weight": 3,
        "decay": "90d",
    },
    {
        "id": "default_feature_usage",
        "name": "Feature Usage",
        "description": "Product feature used",
        "signalType": "feature_usage",
        "weight": 3,
        "decay": "14d",
    },
    {
        "id": "default_npm_download",
        "name": "npm Download",
        "description": "Package downloaded from npm",
        "signalType": "npm_download",
        "weight": 2,
        "decay": "30d",
    },
    {
        "id": "default_pypi_download",
        "name": "PyPI Download",
        "description": "Package downloaded from PyPI",
        "signalType": "pypi_download",
        "weight": 2,
        "decay": "30d",
    },
    {
        "id": "default_docs_view",
        "name": "Docs View",
        "description": "Documentation page viewed",
        "signalType": "docs_view",
        "weight": 2,
        "decay": "14d",
    },
    {
        "id": "default_pricing_view",
        "name": "Pricing Page View",
        "description": "Pricing page viewed",
        "signalType": "page_view",
        "weight": 6,
        "decay": "14d",
        "conditions": [
            {"field": "path", "operator": "contains", "value": "pricing"},
        ],
    },
    {
        "id": "default_page_view",
        "name": "Page View",
        "description": "Any product page viewed",
        "signalType": "page_view",
        "weight": 1,
        "decay": "14d",
    },
    {
        "id": "default_api_call",
        "name": "API Call",
        "description": "Authenticated API request",
        "signalType": "api_call",
        "weight": 1,
        "decay": "7d",
    },
    {
        "id": "default_support_ticket",
        "name": "Support Ticket",
        "description": "Support ticket opened (friction penalty)",
        "signalType": "support_ticket",
        "weight": -3,
        "decay": "14d",
    },
]

# =============================================================================
# DEFAULT THRESHOLDS
# =============================================================================

DEFAULT_TIER_THRESHOLDS = {
    "HOT": 80,
    "WARM": 50,
    "COLD": 20,
}

DEFAULT_MAX_SCORE = 100
