"""
FastAPI Endpoints for PQA Scoring Engine
========================================
RESTful API for account scoring configuration and results.

Base URL: http://localhost:8000

The organization is taken from the X-Organization-Id header; authentication
is handled in front of this service.

Endpoints:
- GET  /                                   - API info
- GET  /api/health                         - Health check
- GET  /api/v1/scoring/config              - Active scoring config
- PUT  /api/v1/scoring/config              - Replace scoring config
- POST /api/v1/scoring/preview             - Dry-run a candidate config
- POST /api/v1/scoring/recompute           - Re-score all accounts
- POST /api/v1/scoring/reset               - Restore default config
- GET  /api/v1/scores                      - Top accounts (tier, limit)
- GET  /api/v1/scores/overview             - Daily score aggregates
- GET  /api/v1/scores/{account_id}         - Latest account score
- POST /api/v1/scores/{account_id}/compute - Re-score one account
- GET  /api/v1/scores/{account_id}/history - Account score history
"""

import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import Body, Depends, FastAPI, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load environment variables
load_dotenv()

from .. import __version__
from ..config.settings import API_CONFIG
from ..engine import PQAScoringEngine, create_engine
from ..errors import (
    AccountScoringFailure,
    InvalidConfig,
    NotFound,
    PQAEngineError,
    StoreUnavailable,
)
from ..logging_config import get_logger
from ..models.schemas import (
    AccountScore,
    OrgOverviewResponse,
    PreviewResponse,
    RecomputeResult,
    ScoreHistoryResponse,
    ScoreTier,
    ScoringConfig,
    TopAccountsResponse,
)

logger = get_logger(__name__)

CONFIG_EXAMPLE = ScoringConfig.model_config["json_schema_extra"]["example"]


# =============================================================================
# FastAPI App Initialization
# =============================================================================

app = FastAPI(
    title="PQA Scoring Engine API",
    description="""
## Product-Qualified-Account Scoring

Turns behavioral signals into a 0-100 account health score, a tier and a trend.

### Features:
- **Configurable rules**: weighted, condition-filtered, time-decayed
- **Dry runs**: preview the impact of a config before committing it
- **Bulk recompute**: re-score every account of an organization
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=API_CONFIG["allowed_origins"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Engine Initialization
# =============================================================================

# In-memory stores (replace with database-backed stores in production)
default_engine = create_engine()


def get_engine() -> PQAScoringEngine:
    return default_engine


def organization_id(x_organization_id: str = Header(..., alias="X-Organization-Id")) -> str:
    return x_organization_id


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    logger.info(
        "%s %s -> %d (%.1f ms)",
        request.method,
        request.url.path,
        response.status_code,
        (time.time() - start_time) * 1000,
    )
    return response


# =============================================================================
# Health & Info Endpoints
# =============================================================================

@app.get("/", tags=["Info"])
async def root():
    """API information and available endpoints"""
    return {
        "service": "PQA Scoring Engine",
        "version": __version__,
        "status": "running",
        "docs": "/docs",
        "endpoints": {
            "Scoring Config": "GET/PUT /api/v1/scoring/config",
            "Preview": "POST /api/v1/scoring/preview",
            "Recompute": "POST /api/v1/scoring/recompute",
            "Reset": "POST /api/v1/scoring/reset",
            "Top Accounts": "GET /api/v1/scores",
            "Account Score": "GET /api/v1/scores/{account_id}",
            "Health": "GET /api/health",
        },
    }


@app.get("/api/health", tags=["Info"])
async def health_check():
    """Health check endpoint for monitoring"""
    return {
        "status": "healthy",
        "service": "PQA Scoring Engine",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# =============================================================================
# Scoring Configuration Endpoints
# =============================================================================

@app.get("/api/v1/scoring/config", response_model=ScoringConfig, tags=["Configuration"])
def get_scoring_config(
    org_id: str = Depends(organization_id),
    engine: PQAScoringEngine = Depends(get_engine),
):
    """Active scoring config (platform default if never set)"""
    return engine.get_config(org_id)


@app.put("/api/v1/scoring/config", response_model=ScoringConfig, tags=["Configuration"])
def update_scoring_config(
    config: Dict[str, Any] = Body(..., examples=[CONFIG_EXAMPLE]),
    org_id: str = Depends(organization_id),
    engine: PQAScoringEngine = Depends(get_engine),
):
    """
    Replace the scoring config

    The whole document is replaced; there is no partial update. Invalid
    configs are rejected with 400 and nothing is stored.
    """
    return engine.update_config(org_id, config)


@app.post("/api/v1/scoring/preview", response_model=PreviewResponse, tags=["Configuration"])
def preview_scoring_config(
    config: Dict[str, Any] = Body(..., examples=[CONFIG_EXAMPLE]),
    org_id: str = Depends(organization_id),
    engine: PQAScoringEngine = Depends(get_engine),
):
    """
    Dry-run a candidate config

    Returns the stored and simulated score/tier of every account.
    Nothing is written.
    """
    return PreviewResponse(previews=engine.preview(org_id, config))


@app.post("/api/v1/scoring/recompute", response_model=RecomputeResult, tags=["Configuration"])
def recompute_scores(
    config: Optional[Dict[str, Any]] = Body(None),
    org_id: str = Depends(organization_id),
    engine: PQAScoringEngine = Depends(get_engine),
):
    """
    Re-score every account

    With a body, the config is validated and stored (nothing is re-scored if it
    is invalid). Without one, the active config is used.
    """
    return engine.recompute(org_id, config)


@app.post("/api/v1/scoring/reset", response_model=ScoringConfig, tags=["Configuration"])
def reset_scoring_config(
    org_id: str = Depends(organization_id),
    engine: PQAScoringEngine = Depends(get_engine),
):
    """Restore the default config and re-score every account"""
    return engine.reset_config(org_id)


# =============================================================================
# Score Endpoints
# =============================================================================

@app.get("/api/v1/scores", response_model=TopAccountsResponse, tags=["Scores"])
def list_top_accounts(
    tier: Optional[ScoreTier] = Query(None, description="Only accounts in this tier"),
    limit: int = Query(
        API_CONFIG["default_top_limit"], ge=1, le=API_CONFIG["max_top_limit"],
        description="Maximum number of accounts",
    ),
    org_id: str = Depends(organization_id),
    engine: PQAScoringEngine = Depends(get_engine),
):
    """Top accounts by score"""
    return TopAccountsResponse(accounts=engine.top_accounts(org_id, tier=tier, limit=limit))


@app.get("/api/v1/scores/overview", response_model=OrgOverviewResponse, tags=["Scores"])
def org_score_overview(
    days: int = Query(API_CONFIG["default_history_days"], ge=1, le=365),
    org_id: str = Depends(organization_id),
    engine: PQAScoringEngine = Depends(get_engine),
):
    """Daily average/min/max score across the organization"""
    return OrgOverviewResponse(data=engine.org_score_overview(org_id, days=days), days=days)


@app.get("/api/v1/scores/{account_id}", response_model=AccountScore, tags=["Scores"])
def get_account_score(
    account_id: str,
    org_id: str = Depends(organization_id),
    engine: PQAScoringEngine = Depends(get_engine),
):
    """Latest score of an account"""
    return engine.get_account_score(org_id, account_id)


@app.post("/api/v1/scores/{account_id}/compute", response_model=AccountScore, tags=["Scores"])
def compute_account_score(
    account_id: str,
    org_id: str = Depends(organization_id),
    engine: PQAScoringEngine = Depends(get_engine),
):
    """Re-score one account under the active config"""
    return engine.compute_account(org_id, account_id)


@app.get("/api/v1/scores/{account_id}/history", response_model=ScoreHistoryResponse, tags=["Scores"])
def account_score_history(
    account_id: str,
    days: int = Query(API_CONFIG["default_history_days"], ge=1, le=365),
    org_id: str = Depends(organization_id),
    engine: PQAScoringEngine = Depends(get_engine),
):
    """Score snapshots of an account over the last `days` days"""
    return ScoreHistoryResponse(
        data=engine.score_history(org_id, account_id, days=days),
        account_id=account_id,
        days=days,
    )


# =============================================================================
# Error Handlers
# =============================================================================

ERROR_STATUS_CODES = {
    InvalidConfig: 400,
    NotFound: 404,
    AccountScoringFailure: 422,
    StoreUnavailable: 503,
}


@app.exception_handler(PQAEngineError)
async def engine_exception_handler(request: Request, exc: PQAEngineError):
    status_code = next(
        (code for cls, code in ERROR_STATUS_CODES.items() if isinstance(exc, cls)),
        500,
    )
    content = {"error": type(exc).__name__, "detail": str(exc)}
    if isinstance(exc, InvalidConfig):
        content["errors"] = exc.errors
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc),
            "type": type(exc).__name__,
        }
    )
