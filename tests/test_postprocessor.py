"""
Testes do Opportunity Post-Processor
====================================
"""

from decimal import Decimal

from arbterminal.engine.postprocessor import deduplicate, filter_resolved, postprocess
from arbterminal.models import ArbitrageType, Opportunity, Outcome


def create_mock_opportunity(
    market_id="poly-1",
    outcome=Outcome.YES,
    profit="5",
    is_resolved=False,
    poly_price="0.50",
    kalshi_price="0.55",
    kalshi_id="KX-1",
) -> Opportunity:
    profit = Decimal(profit)
    return Opportunity(
        event="Event",
        outcome=outcome,
        polymarket_price=Decimal(poly_price),
        kalshi_price=Decimal(kalshi_price),
        spread=profit / 100,
        profit_percent=profit,
        arbitrage=abs(profit) >= 5,
        arbitrage_type=ArbitrageType.SPREAD if abs(profit) >= 5 else ArbitrageType.NONE,
        polymarket_market_id=market_id,
        kalshi_market_id=kalshi_id,
        is_resolved=is_resolved,
    )


def test_filter_resolved_uses_flag():
    active = create_mock_opportunity()
    resolved = create_mock_opportunity(is_resolved=True)
    assert filter_resolved([active, resolved]) == [active]


def test_filter_resolved_recomputes_when_flag_absent():
    unknown_active = create_mock_opportunity(is_resolved=None)
    unknown_resolved = create_mock_opportunity(is_resolved=None, poly_price="0.996")
    assert filter_resolved([unknown_active, unknown_resolved]) == [unknown_active]


def test_deduplicate_keeps_largest_absolute_profit():
    small = create_mock_opportunity(profit="3", kalshi_id="A")
    big_negative = create_mock_opportunity(profit="-8", kalshi_id="B")
    medium = create_mock_opportunity(profit="5", kalshi_id="C")
    other_outcome = create_mock_opportunity(outcome=Outcome.NO, profit="1")
    other_market = create_mock_opportunity(market_id="poly-2", profit="2")

    result = deduplicate([small, big_negative, other_outcome, medium, other_market])

    assert result == [big_negative, other_outcome, other_market]


def test_deduplicate_tie_keeps_first():
    first = create_mock_opportunity(profit="6", kalshi_id="A")
    second = create_mock_opportunity(profit="-6", kalshi_id="B")
    assert deduplicate([first, second]) == [first]


def test_postprocess_unique_keys():
    opportunities = [
        create_mock_opportunity(profit="7", kalshi_id="A"),
        create_mock_opportunity(profit="9", kalshi_id="B", is_resolved=True),
        create_mock_opportunity(profit="4", kalshi_id="C"),
        create_mock_opportunity(outcome=Outcome.NO, profit="2"),
    ]
    result = postprocess(opportunities)

    keys = [(o.polymarket_market_id, o.outcome) for o in result.opportunities]
    assert len(keys) == len(set(keys))
    assert [o.kalshi_market_id for o in result.opportunities] == ["A", "KX-1"]
    assert all(not o.is_resolved for o in result.opportunities)
    assert result.resolved_count == 1
    assert result.duplicates_removed == 1


def test_postprocess_empty():
    result = postprocess([])
    assert result.opportunities == []
    assert result.resolved_count == 0
    assert result.duplicates_removed == 0
