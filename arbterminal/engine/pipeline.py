"""
Arbitrage Pipeline
==================

Orquestra matching -> cálculo -> pós-processamento sobre coleções
de mercados brutos já coletadas. Não faz I/O (exceto o verificador,
se houver).
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from arbterminal.models import MatchedOutcomePair, Opportunity
from .arbitrage_calculator import ArbitrageCalculator
from .market_matcher import MarketMatcher, Verifier
from .postprocessor import postprocess

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Resultado de uma execução do pipeline, com contadores para relatório."""
    matched_pairs: List[MatchedOutcomePair] = field(default_factory=list)
    opportunities: List[Opportunity] = field(default_factory=list)
    total_calculated: int = 0
    resolved_count: int = 0
    duplicates_removed: int = 0
    raw_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def count(self) -> int:
        return len(self.opportunities)

    @property
    def arbitrage_count(self) -> int:
        return sum(1 for o in self.opportunities if o.arbitrage)


async def find_opportunities(
    polymarket_markets: List[dict],
    kalshi_markets: List[dict],
    matcher: Optional[MarketMatcher] = None,
    calculator: Optional[ArbitrageCalculator] = None,
    verifier: Optional[Verifier] = None,
) -> PipelineResult:
    """
    Executa o pipeline completo.

    Args:
        polymarket_markets: Registros brutos da Polymarket
        kalshi_markets: Registros brutos da Kalshi
        matcher: MarketMatcher (padrão se None)
        calculator: ArbitrageCalculator (padrão se None)
        verifier: Verificador externo opcional

    Returns:
        PipelineResult com oportunidades finais e contadores
    """
    matcher = matcher or MarketMatcher()
    calculator = calculator or ArbitrageCalculator()

    pairs = await matcher.match(polymarket_markets, kalshi_markets, verifier=verifier)
    calculated = calculator.calculate_all(pairs)

    cleaned = postprocess(calculated)

    result = PipelineResult(
        matched_pairs=pairs,
        opportunities=cleaned.opportunities,
        total_calculated=len(calculated),
        resolved_count=cleaned.resolved_count,
        duplicates_removed=cleaned.duplicates_removed,
        raw_counts={
            "polymarket": len(polymarket_markets),
            "kalshi": len(kalshi_markets),
        },
    )

    logger.info(
        f"Pipeline: {result.total_calculated} calculadas, {result.resolved_count} resolvidas, "
        f"{result.duplicates_removed} duplicatas, {result.count} finais "
        f"({result.arbitrage_count} com arbitragem)"
    )
    return result
