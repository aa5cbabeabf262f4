"""
Kalshi Data Collector
=====================

Coleta mercados brutos da Kalshi via endpoint público de busca.

API: https://api.elections.kalshi.com/v1/search/series

A resposta agrupa mercados por série (current_page[].markets).
Cada mercado recebe os metadados da série (series_ticker, series_title,
event_ticker, category); o event_title do próprio mercado tem preferência.

IMPORTANTE:
- Preços em centavos (yes_bid) ou em dólares como string (yes_bid_dollars)
- O preço NO é derivado (1 - YES) no engine, não aqui
"""

import logging
from typing import List, Optional

import httpx

logger = logging.getLogger(__name__)


class KalshiCollector:
    """
    Coletor de mercados da Kalshi.

    Responsabilidades:
    1. Buscar séries com seus mercados
    2. Achatar a resposta em uma lista de mercados
    """

    BASE_URL = "https://api.elections.kalshi.com/v1"

    def __init__(
        self,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Inicializa o coletor.

        Args:
            timeout: Timeout para requests HTTP em segundos
            transport: Transporte httpx alternativo (testes)
        """
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        """Context manager entry."""
        self._client = httpx.AsyncClient(
            base_url=self.BASE_URL,
            timeout=self.timeout,
            headers={"Content-Type": "application/json"},
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Retorna o cliente HTTP, garantindo que está inicializado."""
        if self._client is None:
            raise RuntimeError(
                "KalshiCollector deve ser usado como context manager: "
                "async with KalshiCollector() as collector:"
            )
        return self._client

    async def get_markets(self) -> List[dict]:
        """
        Busca mercados do endpoint search/series, sem filtros.

        Returns:
            Lista de mercados (dicts) com metadados da série
        """
        try:
            response = await self.client.get("/search/series")
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Kalshi API error: {e}")
            raise

        markets = flatten_series_response(data)
        logger.info(f"Kalshi: Fetched {len(markets)} markets")
        return markets


def flatten_series_response(data) -> List[dict]:
    """
    Achata a resposta da busca em uma lista de mercados.

    Formatos aceitos, em ordem: current_page (séries com mercados),
    series, markets, data ou lista direta.
    """
    if isinstance(data, list):
        return [m for m in data if isinstance(m, dict)]
    if not isinstance(data, dict):
        logger.warning(f"Kalshi: unexpected response type {type(data).__name__}")
        return []

    current_page = data.get("current_page")
    if isinstance(current_page, list):
        logger.info(
            f"Kalshi: {len(current_page)} series in current_page "
            f"(total results: {data.get('total_results_count', 'unknown')})"
        )
        markets = []
        for series in current_page:
            if not isinstance(series, dict) or not isinstance(series.get("markets"), list):
                continue
            for market in series["markets"]:
                if not isinstance(market, dict):
                    continue
                markets.append({
                    **market,
                    "series_ticker": series.get("series_ticker") or market.get("series_ticker"),
                    "series_title": series.get("series_title") or market.get("series_title"),
                    "event_ticker": series.get("event_ticker") or market.get("event_ticker"),
                    "event_title": market.get("event_title") or series.get("event_title"),
                    "category": series.get("category") or market.get("category"),
                })
        return markets

    for key in ("series", "markets", "data"):
        if isinstance(data.get(key), list):
            return [m for m in data[key] if isinstance(m, dict)]

    logger.warning(f"Kalshi: unexpected response structure: {str(data)[:500]}")
    return []
