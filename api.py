"""
Arbitrage Terminal API
======================

API REST do terminal de arbitragem Polymarket x Kalshi.

Endpoints:
- GET /health - Status do sistema
- GET /markets - Mercados normalizados das duas plataformas
- GET /arbitrage - Oportunidades de arbitragem

Parâmetro _t (qualquer valor) força atualização, ignorando o cache.
"""

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from arbterminal.config import get_settings
from arbterminal.main import ArbitrageScanner

VERSION = "1.0.0"

# Configurar logging
logging.basicConfig(
    level=getattr(logging, get_settings().log_level),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

# Criar app FastAPI
app = FastAPI(
    title="Prediction Market Arbitrage Terminal API",
    description="Matching de mercados e detecção de arbitragem entre Polymarket e Kalshi",
    version=VERSION,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ==================== MODELS ====================

class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: str = VERSION


class NormalizedOutcomeResponse(BaseModel):
    platform: str
    market_id: str
    event_title: str
    outcome: str
    price: float
    liquidity: Optional[float] = None
    closes_at: Optional[str] = None
    slug: Optional[str] = None
    condition_id: Optional[str] = None
    series_ticker: Optional[str] = None
    series_title: Optional[str] = None
    event_ticker: Optional[str] = None


class MarketsResponse(BaseModel):
    markets: List[NormalizedOutcomeResponse]
    count: int
    polymarket_count: int
    kalshi_count: int
    raw_counts: Dict[str, int]
    timestamp: str


class OpportunityResponse(BaseModel):
    event: str
    outcome: str
    polymarket_price: float
    kalshi_price: float
    spread: float
    profit_percent: float
    arbitrage: bool
    arbitrage_type: str
    is_resolved: Optional[bool] = None
    total_cost: Optional[float] = None
    total_cost_with_fees: Optional[float] = None
    guaranteed_profit: Optional[float] = None
    polymarket_market_id: str
    kalshi_market_id: str
    polymarket_slug: Optional[str] = None
    polymarket_condition_id: Optional[str] = None
    kalshi_series_ticker: Optional[str] = None
    kalshi_series_title: Optional[str] = None
    kalshi_event_ticker: Optional[str] = None
    liquidity: Dict[str, Optional[float]] = Field(default_factory=dict)
    closes_at: Optional[str] = None
    detected_at: str


class ArbitrageConfigResponse(BaseModel):
    min_profit_percent: float
    semantic_verification: bool


class ArbitrageResponse(BaseModel):
    opportunities: List[OpportunityResponse]
    count: int
    arbitrage_count: int
    resolved_count: int
    duplicates_removed: int
    raw_counts: Dict[str, int]
    config: ArbitrageConfigResponse
    timestamp: str


# ==================== DEPENDENCIES ====================

@lru_cache
def get_scanner() -> ArbitrageScanner:
    """Scanner compartilhado pelo processo (cache incluso)."""
    return ArbitrageScanner(settings=get_settings())


# ==================== ENDPOINTS ====================

@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@app.get("/markets", response_model=MarketsResponse)
async def get_markets(
    refresh: Optional[str] = Query(default=None, alias="_t"),
    scanner: ArbitrageScanner = Depends(get_scanner),
):
    """Mercados normalizados (YES/NO) das duas plataformas."""
    try:
        snapshot = await scanner.get_markets(force_refresh=refresh is not None)
        return MarketsResponse(**snapshot.to_dict())
    except Exception as e:
        logger.error(f"Erro em /markets: {e}")
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to fetch markets", "message": str(e)},
        )


@app.get("/arbitrage", response_model=ArbitrageResponse)
async def get_arbitrage(
    min_profit_percent: Optional[float] = Query(default=None, alias="minProfitPercent", ge=0),
    refresh: Optional[str] = Query(default=None, alias="_t"),
    scanner: ArbitrageScanner = Depends(get_scanner),
):
    """
    Oportunidades de arbitragem entre mercados casados.

    Mercados resolvidos e duplicatas já vêm removidos.
    """
    try:
        result = await scanner.scan(
            min_profit_percent=min_profit_percent,
            force_refresh=refresh is not None,
        )
        return ArbitrageResponse(**result.to_dict())
    except Exception as e:
        logger.error(f"Erro em /arbitrage: {e}")
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to calculate arbitrage opportunities", "message": str(e)},
        )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
