"""
Testes do Market Matcher
========================

A maior parte dos testes substitui o scorer por uma tabela fixa
(título Polymarket, título Kalshi) -> score, para testar os limiares
exatamente.
"""

import asyncio

import pytest

from arbterminal.engine.market_matcher import MarketMatcher
from arbterminal.models import Outcome, VerificationResult


def create_mock_polymarket_market(market_id, question, prices=("0.40", "0.60")) -> dict:
    return {
        "id": market_id,
        "question": question,
        "outcomes": '["Yes", "No"]',
        "outcomePrices": f'["{prices[0]}", "{prices[1]}"]',
    }


def create_mock_kalshi_market(ticker, event_title, yes_price="0.50") -> dict:
    return {
        "ticker": ticker,
        "event_ticker": ticker.rsplit("-", 1)[0],
        "event_title": event_title,
        "yes_bid_dollars": yes_price,
        "yes_ask_dollars": yes_price,
    }


@pytest.fixture
def scores(monkeypatch):
    """Tabela de scores usada no lugar do scorer real (padrão 0.0)."""
    table = {}

    def fake_score(title_a, title_b):
        return table.get((title_a, title_b), 0.0)

    monkeypatch.setattr("arbterminal.engine.market_matcher.similarity_score", fake_score)
    return table


def create_matcher(**overrides) -> MarketMatcher:
    overrides.setdefault("batch_delay_seconds", 0)
    return MarketMatcher(**overrides)


class RecordingVerifier:
    """Verificador assíncrono com respostas fixas por par de títulos."""

    def __init__(self, answers=None, default=None, error=None):
        self.answers = answers or {}
        self.default = default or VerificationResult(match=False, confidence=0.0)
        self.error = error
        self.calls = []

    async def __call__(self, title_a, title_b):
        self.calls.append((title_a, title_b))
        if self.error is not None:
            raise self.error
        return self.answers.get((title_a, title_b), self.default)


def run_match(matcher, poly, kalshi, verifier=None):
    return asyncio.run(matcher.match(poly, kalshi, verifier=verifier))


def test_candidate_floor_is_never_matched(scores):
    poly = [create_mock_polymarket_market("p1", "A")]
    kalshi = [create_mock_kalshi_market("K-1", "B")]
    scores[("A", "B")] = 0.24

    verifier = RecordingVerifier(default=VerificationResult(match=True, confidence=1.0))

    assert run_match(create_matcher(), poly, kalshi) == []
    assert run_match(create_matcher(), poly, kalshi, verifier) == []
    assert verifier.calls == []


def test_candidate_below_basic_threshold_dropped_without_verifier(scores):
    poly = [create_mock_polymarket_market("p1", "A")]
    kalshi = [create_mock_kalshi_market("K-1", "B")]
    scores[("A", "B")] = 0.26

    matcher = create_matcher()
    assert len(matcher.find_candidates(poly, kalshi)) == 1
    assert run_match(matcher, poly, kalshi) == []


def test_basic_threshold_boundary(scores):
    poly = [create_mock_polymarket_market("p1", "A"), create_mock_polymarket_market("p2", "C")]
    kalshi = [create_mock_kalshi_market("K-1", "B"), create_mock_kalshi_market("K-2", "D")]
    scores[("A", "B")] = 0.4
    scores[("C", "D")] = 0.39

    pairs = run_match(create_matcher(), poly, kalshi)

    assert {p.polymarket.market_id for p in pairs} == {"p1"}
    assert {p.kalshi.market_id for p in pairs} == {"K-1"}


def test_verified_pair_below_basic_threshold_is_matched(scores):
    poly = [create_mock_polymarket_market("p1", "A")]
    kalshi = [create_mock_kalshi_market("K-1", "B")]
    scores[("A", "B")] = 0.26

    verifier = RecordingVerifier(default=VerificationResult(match=True, confidence=0.9))
    pairs = run_match(create_matcher(), poly, kalshi, verifier)

    assert len(pairs) == 2
    assert verifier.calls == [("A", "B")]


def test_verification_overrides_similarity(scores):
    poly = [create_mock_polymarket_market("p1", "A"), create_mock_polymarket_market("p2", "C")]
    kalshi = [create_mock_kalshi_market("K-1", "B"), create_mock_kalshi_market("K-2", "D")]
    scores[("A", "B")] = 0.95
    scores[("C", "D")] = 0.30

    verifier = RecordingVerifier(answers={("C", "D"): VerificationResult(match=True, confidence=0.8)})
    pairs = run_match(create_matcher(), poly, kalshi, verifier)

    assert {p.polymarket.market_id for p in pairs} == {"p2"}
    # Ordem de ranking
    assert verifier.calls == [("A", "B"), ("C", "D")]


def test_low_confidence_is_not_verified(scores):
    poly = [create_mock_polymarket_market("p1", "A")]
    kalshi = [create_mock_kalshi_market("K-1", "B")]
    scores[("A", "B")] = 0.30

    verifier = RecordingVerifier(default=VerificationResult(match=True, confidence=0.69))
    assert run_match(create_matcher(), poly, kalshi, verifier) == []


def test_verifier_failure_falls_back_to_basic_threshold(scores):
    poly = [create_mock_polymarket_market("p1", "A"), create_mock_polymarket_market("p2", "C")]
    kalshi = [create_mock_kalshi_market("K-1", "B"), create_mock_kalshi_market("K-2", "D")]
    scores[("A", "B")] = 0.5
    scores[("C", "D")] = 0.3

    verifier = RecordingVerifier(error=RuntimeError("rate limited"))
    pairs = run_match(create_matcher(), poly, kalshi, verifier)

    assert {p.polymarket.market_id for p in pairs} == {"p1"}


def test_partial_batch_failure_keeps_other_results(scores):
    poly = [create_mock_polymarket_market("p1", "A"), create_mock_polymarket_market("p2", "C")]
    kalshi = [create_mock_kalshi_market("K-1", "B"), create_mock_kalshi_market("K-2", "D")]
    scores[("A", "B")] = 0.9
    scores[("C", "D")] = 0.3

    async def verifier(title_a, title_b):
        if title_a == "A":
            raise ValueError("bad json")
        return VerificationResult(match=True, confidence=0.75)

    pairs = run_match(create_matcher(), poly, kalshi, verifier)
    assert {p.polymarket.market_id for p in pairs} == {"p2"}


def test_sync_verifier_returning_dict(scores):
    poly = [create_mock_polymarket_market("p1", "A")]
    kalshi = [create_mock_kalshi_market("K-1", "B")]
    scores[("A", "B")] = 0.3

    def verifier(title_a, title_b):
        return {"match": True, "confidence": 0.7, "reasoning": "same event"}

    assert len(run_match(create_matcher(), poly, kalshi, verifier)) == 2


def test_verification_limit_and_batches(scores):
    poly = [create_mock_polymarket_market(f"p{i}", f"P{i}") for i in range(5)]
    kalshi = [create_mock_kalshi_market(f"K-{i}", f"K{i}") for i in range(5)]
    for i in range(5):
        scores[(f"P{i}", f"K{i}")] = 0.9 - i * 0.1

    verifier = RecordingVerifier()
    matcher = create_matcher(verification_limit=3, verification_batch_size=2)
    run_match(matcher, poly, kalshi, verifier)

    assert verifier.calls == [("P0", "K0"), ("P1", "K1"), ("P2", "K2")]


class TimingVerifier:
    """Aceita tudo e registra início/fim de cada chamada e o pico de concorrência."""

    def __init__(self, latency):
        self.latency = latency
        self.in_flight = 0
        self.peak = 0
        self.spans = []

    async def __call__(self, title_a, title_b):
        loop = asyncio.get_running_loop()
        start = loop.time()
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        await asyncio.sleep(self.latency)
        self.in_flight -= 1
        self.spans.append((start, loop.time()))
        return VerificationResult(match=True, confidence=1.0)


def test_verification_batches_run_concurrently_with_delay_between(scores):
    poly = [create_mock_polymarket_market(f"p{i}", f"P{i}") for i in range(25)]
    kalshi = [create_mock_kalshi_market(f"K-{i}", f"K{i}") for i in range(25)]
    for i in range(25):
        scores[(f"P{i}", f"K{i}")] = 0.99 - i * 0.01

    delay = 0.1
    verifier = TimingVerifier(latency=0.02)
    matcher = create_matcher(verification_batch_size=10, batch_delay_seconds=delay)

    async def timed_match():
        pairs = await matcher.match(poly, kalshi, verifier=verifier)
        return pairs, asyncio.get_running_loop().time()

    pairs, finished = asyncio.run(timed_match())

    assert len(pairs) == 50
    assert verifier.peak == 10

    spans = sorted(verifier.spans)
    batches = [spans[0:10], spans[10:20], spans[20:25]]
    for previous, following in zip(batches, batches[1:]):
        previous_end = max(end for _, end in previous)
        following_start = min(start for start, _ in following)
        assert following_start >= previous_end + delay - 0.01

    # Sem pausa depois do último lote
    last_end = max(end for _, end in batches[-1])
    assert finished - last_end < delay


def test_kalshi_market_consumed_once(scores):
    poly = [create_mock_polymarket_market("p1", "A"), create_mock_polymarket_market("p2", "A2")]
    kalshi = [create_mock_kalshi_market("K-1", "B")]
    scores[("A", "B")] = 0.6
    scores[("A2", "B")] = 0.9

    pairs = run_match(create_matcher(), poly, kalshi)

    assert {p.polymarket.market_id for p in pairs} == {"p2"}
    assert len(pairs) == 2


def test_polymarket_market_consumed_once(scores):
    poly = [create_mock_polymarket_market("p1", "A")]
    kalshi = [create_mock_kalshi_market("K-1", "B"), create_mock_kalshi_market("K-2", "C")]
    scores[("A", "B")] = 0.5
    scores[("A", "C")] = 0.8

    pairs = run_match(create_matcher(), poly, kalshi)
    assert {p.kalshi.market_id for p in pairs} == {"K-2"}


def test_outcome_expansion(scores):
    poly = [create_mock_polymarket_market("p1", "A", prices=("0.40", "0.60"))]
    kalshi = [create_mock_kalshi_market("K-1", "B", yes_price="0.45")]
    scores[("A", "B")] = 1.0

    pairs = run_match(create_matcher(), poly, kalshi)

    assert [p.outcome for p in pairs] == [Outcome.YES, Outcome.NO]
    for pair in pairs:
        assert pair.event_title == "A"
        assert pair.polymarket.outcome == pair.kalshi.outcome
    assert str(pairs[1].kalshi.price) == "0.55"


def test_expansion_only_for_shared_outcomes(scores):
    poly = [create_mock_polymarket_market("p1", "A")]
    kalshi = [create_mock_kalshi_market("K-1", "B", yes_price="0.45")]
    poly[0]["outcomes"] = '["Yes"]'
    poly[0]["outcomePrices"] = '["0.3"]'
    scores[("A", "B")] = 1.0

    pairs = run_match(create_matcher(), poly, kalshi)
    assert [p.outcome for p in pairs] == [Outcome.YES]


def test_accepted_pair_may_yield_nothing(scores):
    poly = [create_mock_polymarket_market("p1", "A")]
    kalshi = [create_mock_kalshi_market("K-1", "B", yes_price="1.00")]
    scores[("A", "B")] = 1.0

    assert run_match(create_matcher(), poly, kalshi) == []


def test_empty_titles_skipped(scores):
    poly = [create_mock_polymarket_market("p1", "")]
    kalshi = [create_mock_kalshi_market("K-1", "")]
    scores[("", "")] = 1.0

    assert create_matcher().find_candidates(poly, kalshi) == []


def test_explicit_zero_threshold_is_honored(scores):
    poly = [create_mock_polymarket_market("p1", "A")]
    kalshi = [create_mock_kalshi_market("K-1", "B")]
    scores[("A", "B")] = 0.0

    matcher = create_matcher(candidate_threshold=0, basic_threshold=0)
    assert matcher.candidate_threshold == 0
    assert len(run_match(matcher, poly, kalshi)) == 2


def test_rejects_non_list_input():
    with pytest.raises(TypeError):
        asyncio.run(MarketMatcher().match({"id": 1}, []))
    with pytest.raises(TypeError):
        asyncio.run(MarketMatcher().match([], None))


def test_real_scorer_matches_equivalent_titles():
    poly = [
        create_mock_polymarket_market("p1", "Will Donald Trump win the 2024 election?"),
        create_mock_polymarket_market("p2", "Will it rain in Paris tomorrow?"),
    ]
    kalshi = [
        create_mock_kalshi_market("PRES-24-TRUMP", "Trump win 2024 election"),
        create_mock_kalshi_market("NBA-25-LAL", "Lakers win NBA title"),
    ]

    pairs = run_match(MarketMatcher(), poly, kalshi)

    assert {(p.polymarket.market_id, p.kalshi.market_id) for p in pairs} == {("p1", "PRES-24-TRUMP")}
