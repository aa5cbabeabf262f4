"""Engine module - Normalization, matching and arbitrage components."""

from .normalizer import (
    normalize,
    normalize_all_markets,
    normalize_kalshi_market,
    normalize_outcome_label,
    normalize_polymarket_market,
)
from .title_canonicalizer import canonicalize_title
from .similarity import similarity_score
from .market_matcher import MarketMatcher, Verifier
from .semantic_verifier import OpenRouterVerifier
from .arbitrage_calculator import ArbitrageCalculator, is_resolved_price
from .postprocessor import PostprocessResult, deduplicate, filter_resolved, postprocess
from .pipeline import PipelineResult, find_opportunities

__all__ = [
    "normalize",
    "normalize_all_markets",
    "normalize_kalshi_market",
    "normalize_outcome_label",
    "normalize_polymarket_market",
    "canonicalize_title",
    "similarity_score",
    "MarketMatcher",
    "Verifier",
    "OpenRouterVerifier",
    "ArbitrageCalculator",
    "is_resolved_price",
    "deduplicate",
    "filter_resolved",
    "postprocess",
    "PostprocessResult",
    "PipelineResult",
    "find_opportunities",
]
