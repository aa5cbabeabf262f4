"""
Polymarket Data Collector
=========================

Coleta mercados brutos da Polymarket via Gamma API.

API: https://gamma-api.polymarket.com
- GET /markets?limit=&offset=&order=volume24hr&ascending=false

Os registros são devolvidos como dicts (formato da API), com poucos
ajustes: id vira string e os metadados do primeiro evento são copiados
para eventId/eventTitle/eventSlug. A normalização fica no engine.
"""

import asyncio
import logging
from typing import List, Optional

import httpx

logger = logging.getLogger(__name__)


class PolymarketCollector:
    """
    Coletor de mercados da Polymarket.

    Pagina por volume das últimas 24h (maior primeiro) até uma página
    vir incompleta ou o limite de páginas ser atingido.
    """

    GAMMA_URL = "https://gamma-api.polymarket.com"

    def __init__(
        self,
        timeout: float = 30.0,
        page_size: int = 200,
        max_pages: int = 10,
        page_delay_seconds: float = 0.2,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Inicializa o coletor.

        Args:
            timeout: Timeout para requests HTTP em segundos
            page_size: Mercados por página
            max_pages: Máximo de páginas por coleta
            page_delay_seconds: Pausa entre páginas (rate limit)
            transport: Transporte httpx alternativo (testes)
        """
        self.timeout = timeout
        self.page_size = page_size
        self.max_pages = max_pages
        self.page_delay_seconds = page_delay_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        """Context manager entry."""
        self._client = httpx.AsyncClient(
            base_url=self.GAMMA_URL,
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
        """Retorna o cliente Gamma API."""
        if self._client is None:
            raise RuntimeError("PolymarketCollector deve ser usado como context manager")
        return self._client

    async def get_markets_page(self, offset: int = 0) -> tuple[List[dict], bool]:
        """
        Busca uma página de mercados.

        Returns:
            Tupla (mercados, há_mais_páginas)
        """
        params = {
            "limit": self.page_size,
            "offset": offset,
            "order": "volume24hr",
            "ascending": "false",
        }

        try:
            response = await self.client.get("/markets", params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Polymarket Gamma API error: {e}")
            raise

        if not isinstance(data, list):
            logger.warning(f"Polymarket: unexpected response type {type(data).__name__}")
            return [], False

        markets = [self._prepare_market(m) for m in data if isinstance(m, dict) and m.get("id")]
        return markets, len(data) >= self.page_size

    async def get_all_markets(self) -> List[dict]:
        """
        Busca todos os mercados, sem filtro, até max_pages páginas.
        """
        all_markets: List[dict] = []
        offset = 0
        pages = 0

        while pages < self.max_pages:
            markets, has_more = await self.get_markets_page(offset)
            pages += 1
            all_markets.extend(markets)

            if not markets or not has_more:
                break

            offset += self.page_size
            if pages < self.max_pages and self.page_delay_seconds > 0:
                await asyncio.sleep(self.page_delay_seconds)

        logger.info(f"Polymarket: Fetched {len(all_markets)} markets from {pages} pages")
        return all_markets

    def _prepare_market(self, data: dict) -> dict:
        """Cópia do registro com id em string e metadados do evento."""
        market = dict(data)
        market["id"] = str(data["id"])
        market["question"] = data.get("question") or ""
        market["endDateISO"] = data.get("endDateISO") or data.get("endDateIso")
        market["endDateIso"] = data.get("endDateIso") or data.get("endDateISO")

        events = data.get("events")
        if isinstance(events, list) and events and isinstance(events[0], dict):
            market["eventId"] = events[0].get("id")
            market["eventTitle"] = events[0].get("title")
            market["eventSlug"] = events[0].get("slug")

        return market
