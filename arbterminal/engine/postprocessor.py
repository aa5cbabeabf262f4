"""
Opportunity Post-Processor
==========================

Limpeza final da lista de oportunidades:
1. Remove mercados resolvidos
2. Deduplica por (mercado Polymarket, outcome), mantendo o maior |profit_percent|
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from arbterminal.models import Opportunity
from .arbitrage_calculator import is_resolved_price

logger = logging.getLogger(__name__)


@dataclass
class PostprocessResult:
    """Oportunidades finais e quantas foram removidas em cada etapa."""
    opportunities: List[Opportunity] = field(default_factory=list)
    resolved_count: int = 0
    duplicates_removed: int = 0


def _is_resolved(opp: Opportunity) -> bool:
    # Sem a flag, refaz a checagem de banda nos preços
    if opp.is_resolved is None:
        return is_resolved_price(opp.polymarket_price) or is_resolved_price(opp.kalshi_price)
    return opp.is_resolved


def filter_resolved(opportunities: List[Opportunity]) -> List[Opportunity]:
    """Remove oportunidades de mercados resolvidos."""
    return [opp for opp in opportunities if not _is_resolved(opp)]


def deduplicate(opportunities: List[Opportunity]) -> List[Opportunity]:
    """
    Uma oportunidade por (polymarket_market_id, outcome).

    Empate em |profit_percent| mantém a primeira vista. A ordem de
    saída segue a primeira aparição de cada chave.
    """
    best: Dict[Tuple[str, str], Opportunity] = {}
    for opp in opportunities:
        key = (opp.polymarket_market_id, opp.outcome.value)
        current = best.get(key)
        if current is None or abs(opp.profit_percent) > abs(current.profit_percent):
            best[key] = opp
    return list(best.values())


def postprocess(opportunities: List[Opportunity]) -> PostprocessResult:
    """Filtra resolvidos e deduplica."""
    active = filter_resolved(opportunities)
    unique = deduplicate(active)
    result = PostprocessResult(
        opportunities=unique,
        resolved_count=len(opportunities) - len(active),
        duplicates_removed=len(active) - len(unique),
    )
    logger.info(
        f"Pós-processamento: {result.resolved_count} resolvidas removidas, "
        f"{result.duplicates_removed} duplicatas removidas, {len(unique)} restantes"
    )
    return result
