"""
Core Data Models for Arbitrage Terminal
=======================================

Entidades fundamentais do motor de matching e arbitragem:
- NormalizedOutcome: um lado (YES/NO) de um mercado, em formato comum
- CandidatePair: par provisório de mercados brutos entre plataformas
- MatchedOutcomePair: mesmo outcome casado nas duas plataformas
- Opportunity: resultado do cálculo de arbitragem para um par casado

Os registros brutos de cada plataforma continuam sendo dicts (formato da API).
O motor só lê campos nomeados deles, nunca os altera.

PRINCÍPIO CENTRAL: preço é sempre probabilidade em [0, 1].
YES price X implica NO price (1 - X).
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional


class Platform(Enum):
    """Plataformas suportadas pelo sistema."""
    POLYMARKET = "polymarket"
    KALSHI = "kalshi"


class Outcome(Enum):
    """
    Lado binário de um mercado de previsão.

    Em mercados binários: YES + NO = 1.00
    """
    YES = "YES"
    NO = "NO"


class ArbitrageType(Enum):
    """Tipo de arbitragem detectada."""
    TRUE = "true"      # YES + NO mais baratos custam menos que $1
    SPREAD = "spread"  # Diferença de preço relevante entre plataformas
    NONE = "none"


@dataclass(frozen=True)
class NormalizedOutcome:
    """
    Um outcome (YES ou NO) de um mercado, em formato comum às plataformas.

    Criado pelo Normalizer a partir de um registro bruto. Imutável.
    """
    platform: Platform
    market_id: str
    event_title: str
    outcome: Outcome
    price: Decimal
    liquidity: Optional[float] = None
    closes_at: Optional[datetime] = None

    # Polymarket: campos para montar URL
    slug: Optional[str] = None
    condition_id: Optional[str] = None

    # Kalshi: campos para montar URL
    series_ticker: Optional[str] = None
    series_title: Optional[str] = None
    event_ticker: Optional[str] = None

    def __post_init__(self):
        if not (Decimal("0") <= self.price <= Decimal("1")):
            raise ValueError(f"Preço deve estar entre 0 e 1, recebido: {self.price}")

    def to_dict(self) -> dict:
        return {
            "platform": self.platform.value,
            "market_id": self.market_id,
            "event_title": self.event_title,
            "outcome": self.outcome.value,
            "price": float(self.price),
            "liquidity": self.liquidity,
            "closes_at": self.closes_at.isoformat() if self.closes_at else None,
            "slug": self.slug,
            "condition_id": self.condition_id,
            "series_ticker": self.series_ticker,
            "series_title": self.series_title,
            "event_ticker": self.event_ticker,
        }


@dataclass
class CandidatePair:
    """Par provisório (Polymarket, Kalshi) acima do piso de similaridade."""
    polymarket: dict
    kalshi: dict
    similarity: float

    @property
    def kalshi_id(self) -> str:
        return kalshi_market_id(self.kalshi)

    @property
    def key(self) -> str:
        """Chave estável do par, usada para marcar verificação externa."""
        return f"{self.polymarket.get('id')}-{self.kalshi_id}"


@dataclass(frozen=True)
class MatchedOutcomePair:
    """O mesmo outcome de um mesmo evento nas duas plataformas."""
    event_title: str
    polymarket: NormalizedOutcome
    kalshi: NormalizedOutcome

    def __post_init__(self):
        if self.polymarket.outcome != self.kalshi.outcome:
            raise ValueError(
                f"Outcomes diferentes no par: {self.polymarket.outcome.value} "
                f"vs {self.kalshi.outcome.value}"
            )

    @property
    def outcome(self) -> Outcome:
        return self.polymarket.outcome


@dataclass(frozen=True)
class VerificationResult:
    """Resposta do verificador externo para um par de títulos."""
    match: bool
    confidence: float
    reasoning: Optional[str] = None


@dataclass(frozen=True)
class Opportunity:
    """
    Oportunidade calculada para um MatchedOutcomePair.

    Sempre totalmente preenchida, mesmo quando não há arbitragem:
    mercados resolvidos carregam spread/profit_percent para auditoria,
    mas nunca as métricas de arbitragem verdadeira.
    """
    event: str
    outcome: Outcome
    polymarket_price: Decimal
    kalshi_price: Decimal
    spread: Decimal  # kalshi - polymarket
    profit_percent: Decimal
    arbitrage: bool
    arbitrage_type: ArbitrageType

    polymarket_market_id: str
    kalshi_market_id: str

    is_resolved: Optional[bool] = False

    # Métricas de arbitragem verdadeira (None para mercados resolvidos)
    total_cost: Optional[Decimal] = None
    total_cost_with_fees: Optional[Decimal] = None
    guaranteed_profit: Optional[Decimal] = None

    # URLs
    polymarket_slug: Optional[str] = None
    polymarket_condition_id: Optional[str] = None
    kalshi_series_ticker: Optional[str] = None
    kalshi_series_title: Optional[str] = None
    kalshi_event_ticker: Optional[str] = None

    polymarket_liquidity: Optional[float] = None
    kalshi_liquidity: Optional[float] = None
    closes_at: Optional[datetime] = None
    detected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def liquidity(self) -> dict:
        """Liquidez por plataforma."""
        return {"polymarket": self.polymarket_liquidity, "kalshi": self.kalshi_liquidity}

    @property
    def combined_liquidity(self) -> Optional[float]:
        """Soma das liquidezes conhecidas (None se nenhuma for conhecida)."""
        known = [v for v in (self.polymarket_liquidity, self.kalshi_liquidity) if v is not None]
        return sum(known) if known else None

    @property
    def guaranteed_profit_percent(self) -> Optional[Decimal]:
        if self.guaranteed_profit is None:
            return None
        return self.guaranteed_profit * 100

    def to_dict(self) -> dict:
        """Serializa para JSON (preços como float, enums como valor)."""
        def num(value):
            return float(value) if value is not None else None

        return {
            "event": self.event,
            "outcome": self.outcome.value,
            "polymarket_price": num(self.polymarket_price),
            "kalshi_price": num(self.kalshi_price),
            "spread": num(self.spread),
            "profit_percent": num(self.profit_percent),
            "arbitrage": self.arbitrage,
            "arbitrage_type": self.arbitrage_type.value,
            "is_resolved": self.is_resolved,
            "total_cost": num(self.total_cost),
            "total_cost_with_fees": num(self.total_cost_with_fees),
            "guaranteed_profit": num(self.guaranteed_profit),
            "polymarket_market_id": self.polymarket_market_id,
            "kalshi_market_id": self.kalshi_market_id,
            "polymarket_slug": self.polymarket_slug,
            "polymarket_condition_id": self.polymarket_condition_id,
            "kalshi_series_ticker": self.kalshi_series_ticker,
            "kalshi_series_title": self.kalshi_series_title,
            "kalshi_event_ticker": self.kalshi_event_ticker,
            "liquidity": self.liquidity,
            "closes_at": self.closes_at.isoformat() if self.closes_at else None,
            "detected_at": self.detected_at.isoformat(),
        }


def kalshi_market_id(record: dict) -> str:
    """Identificador de um registro Kalshi: ticker, senão event_ticker."""
    return record.get("ticker") or record.get("event_ticker") or ""


# Constantes do sistema
RESOLVED_THRESHOLD = Decimal("0.005")  # Banda de 0.5% perto de 0 e de 1
DEFAULT_MIN_PROFIT_PERCENT = Decimal("5.0")  # Spread mínimo, em pontos percentuais
DEFAULT_MIN_TRUE_ARBITRAGE_PROFIT = Decimal("0.01")  # Lucro garantido mínimo (fração)
DEFAULT_TRANSACTION_FEE = Decimal("0.01")  # Taxa aplicada sobre o custo total

CANDIDATE_SIMILARITY_THRESHOLD = 0.25  # Pré-filtro, não é decisão de match
BASIC_SIMILARITY_THRESHOLD = 0.4  # Decisão de match sem verificador
VERIFICATION_CONFIDENCE_THRESHOLD = 0.7
VERIFICATION_LIMIT = 100
VERIFICATION_BATCH_SIZE = 10
VERIFICATION_BATCH_DELAY_SECONDS = 0.2
