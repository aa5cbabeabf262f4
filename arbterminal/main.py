"""
Prediction Market Arbitrage Terminal
====================================

Detecta oportunidades de arbitragem entre Polymarket e Kalshi.

Fluxo de um scan:
1. Coleta dos mercados brutos das duas plataformas (em paralelo)
2. Matching de mercados equivalentes (com verificação LLM se houver chave)
3. Cálculo de spread e de arbitragem verdadeira por outcome
4. Remoção de mercados resolvidos e de duplicatas

USO:
    python -m arbterminal.main scan --min-profit 3
    python -m arbterminal.main scan --no-verify --limit 5
    python -m arbterminal.main markets

    Ou como módulo:
    from arbterminal.main import ArbitrageScanner
    scanner = ArbitrageScanner()
    result = await scanner.scan()
"""

import argparse
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional

from .cache import TTLCache
from .collectors import KalshiCollector, PolymarketCollector
from .config import Settings, get_settings
from .engine import (
    ArbitrageCalculator,
    MarketMatcher,
    OpenRouterVerifier,
    PipelineResult,
    find_opportunities,
    normalize_all_markets,
)
from .models import NormalizedOutcome, Platform

logger = logging.getLogger(__name__)

MARKETS_CACHE_KEY = "markets"


def arbitrage_cache_key(min_profit_percent: Optional[float]) -> str:
    """Chave de cache do resultado de arbitragem para um limiar."""
    return f"arbitrage-{'default' if min_profit_percent is None else min_profit_percent}"


@dataclass
class ScanResult:
    """Resultado de um scan completo."""
    pipeline: PipelineResult
    min_profit_percent: float
    verified: bool
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "opportunities": [o.to_dict() for o in self.pipeline.opportunities],
            "count": self.pipeline.count,
            "arbitrage_count": self.pipeline.arbitrage_count,
            "resolved_count": self.pipeline.resolved_count,
            "duplicates_removed": self.pipeline.duplicates_removed,
            "raw_counts": dict(self.pipeline.raw_counts),
            "config": {
                "min_profit_percent": self.min_profit_percent,
                "semantic_verification": self.verified,
            },
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class MarketsSnapshot:
    """Mercados brutos e normalizados de uma coleta."""
    polymarket: List[dict]
    kalshi: List[dict]
    normalized: List[NormalizedOutcome]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def count_for(self, platform: Platform) -> int:
        return sum(1 for o in self.normalized if o.platform == platform)

    def to_dict(self) -> dict:
        return {
            "markets": [o.to_dict() for o in self.normalized],
            "count": len(self.normalized),
            "polymarket_count": self.count_for(Platform.POLYMARKET),
            "kalshi_count": self.count_for(Platform.KALSHI),
            "raw_counts": {
                "polymarket": len(self.polymarket),
                "kalshi": len(self.kalshi),
            },
            "timestamp": self.timestamp.isoformat(),
        }


class ArbitrageScanner:
    """
    Scanner principal de arbitragem.

    Coordena:
    1. Coleta de dados das duas plataformas
    2. Pipeline de matching e cálculo
    3. Cache dos resultados (TTLCache injetado)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        cache: Optional[TTLCache] = None,
        polymarket_collector: Optional[Callable[[], PolymarketCollector]] = None,
        kalshi_collector: Optional[Callable[[], KalshiCollector]] = None,
        verifier_factory: Optional[Callable[[], OpenRouterVerifier]] = None,
        matcher: Optional[MarketMatcher] = None,
    ):
        """
        Inicializa o scanner.

        Args:
            settings: Configuração (get_settings() se None)
            cache: Cache de resultados (novo TTLCache se None)
            polymarket_collector: Fábrica do coletor Polymarket
            kalshi_collector: Fábrica do coletor Kalshi
            verifier_factory: Fábrica do verificador (OpenRouter se houver chave)
            matcher: MarketMatcher (padrão se None)
        """
        self.settings = settings or get_settings()
        self.cache = cache if cache is not None else TTLCache(self.settings.cache_ttl_seconds)
        self.matcher = matcher or MarketMatcher()

        self._polymarket_collector = polymarket_collector or (
            lambda: PolymarketCollector(
                timeout=self.settings.http_timeout_seconds,
                page_size=self.settings.polymarket_page_size,
                max_pages=self.settings.polymarket_max_pages,
            )
        )
        self._kalshi_collector = kalshi_collector or (
            lambda: KalshiCollector(timeout=self.settings.http_timeout_seconds)
        )
        self._verifier_factory = verifier_factory
        if self._verifier_factory is None and self.settings.verification_enabled:
            self._verifier_factory = lambda: OpenRouterVerifier(
                api_key=self.settings.openrouter_api_key,
                model=self.settings.openrouter_model,
                base_url=self.settings.openrouter_base_url,
                app_url=self.settings.app_url,
                timeout=self.settings.http_timeout_seconds,
            )

    @property
    def verification_available(self) -> bool:
        return self._verifier_factory is not None

    def build_calculator(self, min_profit_percent: Optional[float] = None) -> ArbitrageCalculator:
        """Calculador com os limiares da configuração."""
        return ArbitrageCalculator(
            min_profit_percent=(
                self.settings.min_profit_percent if min_profit_percent is None else min_profit_percent
            ),
            min_true_arbitrage_profit=self.settings.min_true_arbitrage_profit,
            transaction_fee=self.settings.transaction_fee,
        )

    async def collect(self) -> tuple[List[dict], List[dict]]:
        """Coleta mercados brutos das duas plataformas em paralelo."""
        async with self._polymarket_collector() as polymarket, self._kalshi_collector() as kalshi:
            polymarket_markets, kalshi_markets = await asyncio.gather(
                polymarket.get_all_markets(),
                kalshi.get_markets(),
            )

        logger.info(
            f"Coletados {len(polymarket_markets)} mercados Polymarket "
            f"e {len(kalshi_markets)} mercados Kalshi"
        )
        return polymarket_markets, kalshi_markets

    async def get_markets(self, force_refresh: bool = False) -> MarketsSnapshot:
        """
        Mercados normalizados das duas plataformas (com cache).

        Args:
            force_refresh: Ignora o cache na leitura (o resultado novo é gravado)
        """
        if not force_refresh:
            cached = self.cache.get(MARKETS_CACHE_KEY)
            if cached is not None:
                logger.info("Mercados servidos do cache")
                return cached

        polymarket_markets, kalshi_markets = await self.collect()
        snapshot = MarketsSnapshot(
            polymarket=polymarket_markets,
            kalshi=kalshi_markets,
            normalized=normalize_all_markets(polymarket_markets, kalshi_markets),
        )
        self.cache.set(MARKETS_CACHE_KEY, snapshot)
        return snapshot

    async def scan(
        self,
        min_profit_percent: Optional[float] = None,
        force_refresh: bool = False,
        use_verifier: bool = True,
    ) -> ScanResult:
        """
        Executa scan completo de arbitragem.

        Args:
            min_profit_percent: Spread mínimo em pontos percentuais (config se None)
            force_refresh: Ignora o cache na leitura
            use_verifier: Se False, nunca usa verificação semântica

        Returns:
            ScanResult com oportunidades e contadores
        """
        cache_key = arbitrage_cache_key(min_profit_percent)
        if not force_refresh:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.info(f"Resultado servido do cache ({cache_key})")
                return cached

        calculator = self.build_calculator(min_profit_percent)
        logger.info(f"Buscando oportunidades (spread mínimo {calculator.min_profit_percent}%)")

        polymarket_markets, kalshi_markets = await self.collect()

        verify = use_verifier and self.verification_available
        if verify:
            async with self._verifier_factory() as verifier:
                pipeline = await find_opportunities(
                    polymarket_markets, kalshi_markets,
                    matcher=self.matcher, calculator=calculator, verifier=verifier,
                )
        else:
            pipeline = await find_opportunities(
                polymarket_markets, kalshi_markets,
                matcher=self.matcher, calculator=calculator,
            )

        result = ScanResult(
            pipeline=pipeline,
            min_profit_percent=float(calculator.min_profit_percent),
            verified=verify,
        )
        self.cache.set(cache_key, result)
        return result


def print_scan_result(result: ScanResult, calculator: ArbitrageCalculator, limit: int = 10):
    """Imprime as melhores oportunidades e o sumário do scan."""
    ranked = sorted(
        result.pipeline.opportunities,
        key=lambda o: (o.arbitrage, abs(o.profit_percent)),
        reverse=True,
    )
    for opp in ranked[:limit]:
        if opp.arbitrage:
            print(calculator.format_opportunity(opp))

    print(f"\n{'='*60}")
    print("SUMÁRIO DO SCAN")
    print(f"{'='*60}")
    print(f"Mercados Polymarket: {result.pipeline.raw_counts.get('polymarket', 0)}")
    print(f"Mercados Kalshi: {result.pipeline.raw_counts.get('kalshi', 0)}")
    print(f"Pares de outcome casados: {len(result.pipeline.matched_pairs)}")
    print(f"Resolvidos removidos: {result.pipeline.resolved_count}")
    print(f"Duplicatas removidas: {result.pipeline.duplicates_removed}")
    print(f"Oportunidades: {result.pipeline.count}")
    print(f"Com arbitragem: {result.pipeline.arbitrage_count}")
    print(f"Verificação semântica: {'sim' if result.verified else 'não'}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="arbterminal",
        description="Polymarket x Kalshi arbitrage terminal",
    )
    subparsers = parser.add_subparsers(dest="command")

    scan = subparsers.add_parser("scan", help="Executa um scan de arbitragem")
    scan.add_argument("--min-profit", type=float, default=None, help="Spread mínimo em pontos percentuais")
    scan.add_argument("--no-verify", action="store_true", help="Desabilita a verificação semântica")
    scan.add_argument("--limit", type=int, default=10, help="Máximo de oportunidades exibidas")

    subparsers.add_parser("markets", help="Mostra contagens de mercados normalizados")
    return parser


async def run(args: argparse.Namespace, settings: Settings) -> int:
    scanner = ArbitrageScanner(settings=settings)

    if args.command == "markets":
        snapshot = await scanner.get_markets(force_refresh=True)
        print(f"Polymarket: {len(snapshot.polymarket)} mercados -> "
              f"{snapshot.count_for(Platform.POLYMARKET)} outcomes")
        print(f"Kalshi: {len(snapshot.kalshi)} mercados -> "
              f"{snapshot.count_for(Platform.KALSHI)} outcomes")
        print(f"Total: {len(snapshot.normalized)} outcomes normalizados")
        return 0

    result = await scanner.scan(
        min_profit_percent=args.min_profit,
        force_refresh=True,
        use_verifier=not args.no_verify,
    )
    print_scan_result(result, scanner.build_calculator(args.min_profit), limit=args.limit)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Função principal."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 1

    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    return asyncio.run(run(args, settings))


if __name__ == "__main__":
    raise SystemExit(main())
