"""
Arbitrage Calculator
====================

Calcula a Opportunity de um MatchedOutcomePair.

SEQUÊNCIA OBRIGATÓRIA:
1. Mercado resolvido (preço <= 0.005 ou >= 0.995 em qualquer lado)?
   -> arbitrage=False, is_resolved=True, só spread/profit para auditoria
2. Spread = kalshi - polymarket; profit_percent = spread * 100
3. Arbitragem verdadeira: YES mais barato + NO mais barato entre as
   plataformas, com taxa multiplicativa sobre o custo total
4. Classificação: true > spread > none

Resolução é só por preço: data de fechamento próxima ou passada
NÃO marca o par como resolvido.
"""

import logging
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from arbterminal.models import (
    ArbitrageType,
    MatchedOutcomePair,
    NormalizedOutcome,
    Opportunity,
    Outcome,
    DEFAULT_MIN_PROFIT_PERCENT,
    DEFAULT_MIN_TRUE_ARBITRAGE_PROFIT,
    DEFAULT_TRANSACTION_FEE,
    RESOLVED_THRESHOLD,
)

logger = logging.getLogger(__name__)

ONE = Decimal("1")
ZERO = Decimal("0")


def is_resolved_price(price: Decimal) -> bool:
    """Preço dentro da banda de 0.5% junto a 0 ou a 1."""
    return price <= RESOLVED_THRESHOLD or price >= ONE - RESOLVED_THRESHOLD


def _as_decimal(value, fallback: Decimal) -> Decimal:
    if value is None:
        return fallback
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _yes_no(side: NormalizedOutcome) -> Tuple[Decimal, Decimal]:
    """(YES, NO) de um lado, derivando o outro lado do preço conhecido."""
    if side.outcome == Outcome.YES:
        return side.price, ONE - side.price
    return ONE - side.price, side.price


class ArbitrageCalculator:
    """
    Calcula e classifica oportunidades.

    Sem estado entre chamadas; pode ser reutilizado por vários pipelines.
    """

    def __init__(
        self,
        min_profit_percent=None,
        min_true_arbitrage_profit=None,
        transaction_fee=None,
    ):
        """
        Args:
            min_profit_percent: Spread mínimo em pontos percentuais (ex: 5.0)
            min_true_arbitrage_profit: Lucro garantido mínimo, em fração (ex: 0.01)
            transaction_fee: Taxa sobre o custo total, em fração (ex: 0.01 = 1%)
        """
        self.min_profit_percent = _as_decimal(min_profit_percent, DEFAULT_MIN_PROFIT_PERCENT)
        self.min_true_arbitrage_profit = _as_decimal(
            min_true_arbitrage_profit, DEFAULT_MIN_TRUE_ARBITRAGE_PROFIT
        )
        self.transaction_fee = _as_decimal(transaction_fee, DEFAULT_TRANSACTION_FEE)

    def calculate(self, pair: MatchedOutcomePair) -> Opportunity:
        """
        Calcula a oportunidade para um par casado.

        Returns:
            Opportunity sempre preenchida (arbitrage=False quando não há)
        """
        poly = pair.polymarket
        kalshi = pair.kalshi

        spread = kalshi.price - poly.price
        profit_percent = spread * 100

        common = dict(
            event=pair.event_title,
            outcome=pair.outcome,
            polymarket_price=poly.price,
            kalshi_price=kalshi.price,
            spread=spread,
            profit_percent=profit_percent,
            polymarket_market_id=poly.market_id,
            kalshi_market_id=kalshi.market_id,
            polymarket_slug=poly.slug,
            polymarket_condition_id=poly.condition_id,
            kalshi_series_ticker=kalshi.series_ticker,
            kalshi_series_title=kalshi.series_title,
            kalshi_event_ticker=kalshi.event_ticker,
            polymarket_liquidity=poly.liquidity,
            kalshi_liquidity=kalshi.liquidity,
            closes_at=self._nearest_close(poly, kalshi),
        )

        if is_resolved_price(poly.price) or is_resolved_price(kalshi.price):
            logger.debug(
                f"Mercado resolvido ignorado: {pair.event_title} "
                f"(Poly {poly.price} / Kalshi {kalshi.price})"
            )
            return Opportunity(
                arbitrage=False,
                arbitrage_type=ArbitrageType.NONE,
                is_resolved=True,
                **common,
            )

        poly_yes, poly_no = _yes_no(poly)
        kalshi_yes, kalshi_no = _yes_no(kalshi)

        total_cost = min(poly_yes, kalshi_yes) + min(poly_no, kalshi_no)
        total_cost_with_fees = total_cost * (ONE + self.transaction_fee)
        guaranteed_profit = max(ZERO, ONE - total_cost_with_fees)

        is_true_arbitrage = (
            total_cost_with_fees < ONE
            and guaranteed_profit >= self.min_true_arbitrage_profit
        )
        is_spread_arbitrage = abs(profit_percent) >= self.min_profit_percent

        if is_true_arbitrage:
            arbitrage_type = ArbitrageType.TRUE
        elif is_spread_arbitrage:
            arbitrage_type = ArbitrageType.SPREAD
        else:
            arbitrage_type = ArbitrageType.NONE

        return Opportunity(
            arbitrage=is_true_arbitrage or is_spread_arbitrage,
            arbitrage_type=arbitrage_type,
            is_resolved=False,
            total_cost=total_cost,
            total_cost_with_fees=total_cost_with_fees,
            guaranteed_profit=guaranteed_profit,
            **common,
        )

    def calculate_all(self, pairs: Iterable[MatchedOutcomePair]) -> List[Opportunity]:
        """Calcula todas as oportunidades, na ordem dos pares."""
        opportunities = [self.calculate(pair) for pair in pairs]
        arbitrage_count = sum(1 for o in opportunities if o.arbitrage)
        logger.info(
            f"Oportunidades calculadas: {len(opportunities)} "
            f"({arbitrage_count} com arbitragem)"
        )
        return opportunities

    @staticmethod
    def _nearest_close(poly: NormalizedOutcome, kalshi: NormalizedOutcome):
        known = [c for c in (poly.closes_at, kalshi.closes_at) if c is not None]
        return min(known) if known else None

    def format_opportunity(self, opp: Opportunity) -> str:
        """Formata uma oportunidade para exibição."""
        event = opp.event if len(opp.event) <= 52 else opp.event[:49] + "..."
        guaranteed = (
            f"${opp.guaranteed_profit:>10.4f}" if opp.guaranteed_profit is not None else f"{'n/a':>11}"
        )
        total_cost = (
            f"${opp.total_cost_with_fees:>10.4f}" if opp.total_cost_with_fees is not None else f"{'n/a':>11}"
        )
        return f"""
╔══════════════════════════════════════════════════════════════════╗
║                    ARBITRAGE OPPORTUNITY                         ║
╠══════════════════════════════════════════════════════════════════╣
║ Event: {event:<57} ║
║ Outcome: {opp.outcome.value:<8} Type: {opp.arbitrage_type.value:<41} ║
╠══════════════════════════════════════════════════════════════════╣
║ POLYMARKET: {opp.polymarket_market_id[:52]:<52} ║
║   Price: ${opp.polymarket_price:.4f}                                                ║
║ KALSHI: {opp.kalshi_market_id[:56]:<56} ║
║   Price: ${opp.kalshi_price:.4f}                                                ║
╠══════════════════════════════════════════════════════════════════╣
║ ECONOMICS:                                                       ║
║   Spread:            {opp.spread:>+10.4f}                                  ║
║   Profit:            {opp.profit_percent:>+10.2f}%                                 ║
║   Cost (w/ fees):   {total_cost}                                  ║
║   Guaranteed:       {guaranteed}                                  ║
╚══════════════════════════════════════════════════════════════════╝
"""
