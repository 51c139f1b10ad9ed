"""
PQA Scoring Engine - Usage Examples
===================================
This file demonstrates how to use the PQA Scoring Engine
both programmatically and via the API.
"""

from datetime import datetime, timedelta, timezone

ORG_ID = "org_demo"
NOW = datetime.now(timezone.utc)


def _sample_signals():
    """A handful of accounts with different activity levels"""
    signals = []
    for i in range(8):
        signals.append({
            "id": f"acme_pv_{i}",
            "type": "page_view",
            "accountId": "acme",
            "actorId": f"acme_user_{i % 3}",
            "timestamp": (NOW - timedelta(days=i)).isoformat(),
            "metadata": {"path": "/pricing" if i % 2 else "/docs/quickstart"},
        })
    signals.append({
        "id": "acme_signup",
        "type": "signup",
        "accountId": "acme",
        "actorId": "acme_user_0",
        "timestamp": (NOW - timedelta(days=3)).isoformat(),
    })
    for i in range(3):
        signals.append({
            "id": f"globex_star_{i}",
            "type": "github_star",
            "accountId": "globex",
            "actorId": f"globex_user_{i}",
            "timestamp": (NOW - timedelta(days=20 + i)).isoformat(),
        })
    signals.append({
        "id": "initech_ticket",
        "type": "support_ticket",
        "accountId": "initech",
        "actorId": "initech_user_0",
        "timestamp": (NOW - timedelta(days=1)).isoformat(),
        "metadata": {"priority": "high"},
    })
    return signals


# =============================================================================
# EXAMPLE 1: Direct Engine Usage (Programmatic)
# =============================================================================

def example_direct_usage():
    """Use the engine directly in Python code"""
    from pqa_engine.engine import create_engine

    engine = create_engine(
        organization_id=ORG_ID,
        account_ids=["hooli"],
        signals=_sample_signals(),
    )

    print("=" * 60)
    print("RECOMPUTE UNDER DEFAULT CONFIG")
    print("=" * 60)

    result = engine.recompute(ORG_ID)
    print(f"Updated {result.updated}/{result.total} accounts ({result.skipped} skipped)")

    for score in engine.top_accounts(ORG_ID):
        print(f"\n{score.account_id}: {score.score:.1f} ({score.tier.value}, {score.trend.value})")
        print(f"  Signals: {score.signal_count}  Users: {score.user_count}")
        for factor in score.factors[:3]:
            print(f"  {factor.value:+6.1f}  {factor.name}: {factor.description}")

    return engine


# =============================================================================
# EXAMPLE 2: Preview a Config Change
# =============================================================================

def example_preview(engine=None):
    """Dry-run a candidate config before committing it"""
    from pqa_engine.models.scoring_config import create_default_scoring_config

    engine = engine or example_direct_usage()

    candidate = create_default_scoring_config(
        extra_rules=[
            {
                "id": "star_burst",
                "name": "GitHub Star Burst",
                "signalType": "github_star",
                "weight": 10,
                "decay": "30d",
            },
        ],
        tier_thresholds={"HOT": 60, "WARM": 35, "COLD": 10},
    )

    print("=" * 60)
    print("PREVIEW")
    print("=" * 60)

    for preview in engine.preview(ORG_ID, candidate):
        print(
            f"  {preview.account_id:<10} {preview.current_score:6.1f} -> {preview.preview_score:6.1f}"
            f"  ({preview.current_tier.value} -> {preview.preview_tier.value})"
        )

    # Nothing was stored
    print(f"\nActive rules still: {len(engine.get_config(ORG_ID).rules)}")
    return candidate


# =============================================================================
# EXAMPLE 3: Custom Configuration
# =============================================================================

def example_custom_config():
    """Store a custom config and recompute with it"""
    from pqa_engine.engine import create_engine
    from pqa_engine.errors import InvalidConfig

    engine = create_engine(organization_id=ORG_ID, signals=_sample_signals())

    config = {
        "rules": [
            {
                "id": "pricing_views",
                "name": "Pricing Page View",
                "signalType": "page_view",
                "weight": 10,
                "decay": "30d",
                "conditions": [{"field": "path", "operator": "contains", "value": "pricing"}],
            },
            {
                "id": "tickets",
                "name": "Support Ticket",
                "signalType": "support_ticket",
                "weight": -5,
                "decay": "14d",
            },
        ],
        "tierThresholds": {"HOT": 70, "WARM": 40, "COLD": 10},
        "maxScore": 100,
    }

    result = engine.recompute(ORG_ID, config)
    print(f"Recomputed {result.updated} accounts with {len(result.config.rules)} rules")

    try:
        engine.update_config(ORG_ID, {**config, "tierThresholds": {"HOT": 10, "WARM": 40, "COLD": 70}})
    except InvalidConfig as e:
        print(f"Rejected: {e.errors}")

    return engine


# =============================================================================
# EXAMPLE 4: API Usage with httpx
# =============================================================================

def example_api_usage():
    """Use the API via HTTP requests"""
    BASE_URL = "http://localhost:8000"

    print("=" * 60)
    print("API USAGE EXAMPLE")
    print("=" * 60)
    print("Make sure the server is running: python main.py")
    print()

    headers = {"X-Organization-Id": ORG_ID}
    payload = {
        "rules": [
            {"id": "page_views", "name": "Page View", "signalType": "page_view", "weight": 10, "decay": "30d"},
        ],
        "tierThresholds": {"HOT": 70, "WARM": 40, "COLD": 10},
        "maxScore": 100,
    }

    print("Request payload:")
    print(f"  POST {BASE_URL}/api/v1/scoring/preview")
    print(f"  {headers}")
    print(f"  {payload}")

    # Uncomment to actually make the request:
    # import httpx
    # response = httpx.post(f"{BASE_URL}/api/v1/scoring/preview", json=payload, headers=headers)
    # print(f"\nResponse: {response.json()}")


# =============================================================================
# MAIN
# =============================================================================

if __name__ == "__main__":
    print("\n" + "=" * 60)
    print("PQA SCORING ENGINE - USAGE EXAMPLES")
    print("=" * 60 + "\n")

    print("\n[Example 1: Direct Usage]")
    engine = example_direct_usage()

    print("\n" + "-" * 60)
    print("\n[Example 2: Preview]")
    example_preview(engine)

    print("\n" + "-" * 60)
    print("\n[Example 3: Custom Configuration]")
    example_custom_config()

    print("\n" + "-" * 60)
    print("\n[Example 4: API Usage]")
    example_api_usage()

    print("\n" + "=" * 60)
    print("EXAMPLES COMPLETE")
    print("=" * 60)
