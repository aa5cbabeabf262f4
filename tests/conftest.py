import httpx
import pytest

from arbterminal.cache import TTLCache
from arbterminal.collectors import KalshiCollector, PolymarketCollector
from arbterminal.config import Settings
from arbterminal.main import ArbitrageScanner


def create_mock_polymarket_markets() -> list:
    """Um mercado com arbitragem verdadeira e um já resolvido."""
    return [
        {
            "id": 501,
            "question": "Will Donald Trump win the 2024 election?",
            "outcomes": '["Yes", "No"]',
            "outcomePrices": '["0.40", "0.60"]',
            "liquidityNum": 50000,
            "slug": "trump-2024",
            "conditionId": "0xtrump",
            "endDateIso": "2024-11-05T00:00:00Z",
        },
        {
            "id": 502,
            "question": "Will Bitcoin reach $1M in 2024?",
            "outcomes": '["Yes", "No"]',
            "outcomePrices": '["0", "1"]',
            "liquidityNum": 100,
        },
    ]


def create_mock_kalshi_response() -> dict:
    return {
        "total_results_count": 3,
        "current_page": [
            {
                "series_ticker": "PRES",
                "series_title": "Presidential election",
                "event_ticker": "PRES-24",
                "markets": [{
                    "ticker": "PRES-24-TRUMP",
                    "event_title": "Trump win 2024 election",
                    "yes_bid_dollars": "0.49",
                    "yes_ask_dollars": "0.51",
                    "volume": 12000,
                    "close_ts": "2024-11-04T00:00:00Z",
                }],
            },
            {
                "series_ticker": "BTC",
                "event_ticker": "BTC-24",
                "markets": [{
                    "ticker": "BTC-24-1M",
                    "event_title": "Bitcoin reach 1M 2024",
                    "yes_bid_dollars": "0.02",
                    "yes_ask_dollars": "0.04",
                }],
            },
            {
                "series_ticker": "NBA",
                "event_ticker": "NBA-25",
                "markets": [{
                    "ticker": "NBA-25-LAL",
                    "event_title": "Lakers win NBA title",
                    "yes_bid": 10,
                    "yes_ask": 12,
                }],
            },
        ],
    }


class MockPlatforms:
    """Transports httpx para as duas plataformas, contando requests."""

    def __init__(self, polymarket_markets=None, kalshi_response=None, fail=False):
        self.polymarket_markets = polymarket_markets if polymarket_markets is not None else create_mock_polymarket_markets()
        self.kalshi_response = kalshi_response if kalshi_response is not None else create_mock_kalshi_response()
        self.fail = fail
        self.polymarket_requests = 0
        self.kalshi_requests = 0

    def _polymarket(self, request: httpx.Request) -> httpx.Response:
        self.polymarket_requests += 1
        if self.fail:
            return httpx.Response(502, text="bad gateway")
        offset = int(request.url.params.get("offset", 0))
        return httpx.Response(200, json=self.polymarket_markets if offset == 0 else [])

    def _kalshi(self, request: httpx.Request) -> httpx.Response:
        self.kalshi_requests += 1
        return httpx.Response(200, json=self.kalshi_response)

    def polymarket_collector(self) -> PolymarketCollector:
        return PolymarketCollector(
            transport=httpx.MockTransport(self._polymarket),
            page_delay_seconds=0,
        )

    def kalshi_collector(self) -> KalshiCollector:
        return KalshiCollector(transport=httpx.MockTransport(self._kalshi))


@pytest.fixture
def test_settings() -> Settings:
    return Settings(_env_file=None, openrouter_api_key=None, log_level="INFO")


@pytest.fixture
def platforms() -> MockPlatforms:
    return MockPlatforms()


@pytest.fixture
def scanner(test_settings, platforms) -> ArbitrageScanner:
    return ArbitrageScanner(
        settings=test_settings,
        cache=TTLCache(default_ttl=600),
        polymarket_collector=platforms.polymarket_collector,
        kalshi_collector=platforms.kalshi_collector,
    )


@pytest.fixture
def failing_platforms() -> MockPlatforms:
    return MockPlatforms(fail=True)
