"""Models module - Core data structures for the arbitrage terminal."""

from .core import (
    Platform,
    Outcome,
    ArbitrageType,
    NormalizedOutcome,
    CandidatePair,
    MatchedOutcomePair,
    VerificationResult,
    Opportunity,
    kalshi_market_id,
    RESOLVED_THRESHOLD,
    DEFAULT_MIN_PROFIT_PERCENT,
    DEFAULT_MIN_TRUE_ARBITRAGE_PROFIT,
    DEFAULT_TRANSACTION_FEE,
    CANDIDATE_SIMILARITY_THRESHOLD,
    BASIC_SIMILARITY_THRESHOLD,
    VERIFICATION_CONFIDENCE_THRESHOLD,
    VERIFICATION_LIMIT,
    VERIFICATION_BATCH_SIZE,
    VERIFICATION_BATCH_DELAY_SECONDS,
)

__all__ = [
    "Platform",
    "Outcome",
    "ArbitrageType",
    "NormalizedOutcome",
    "CandidatePair",
    "MatchedOutcomePair",
    "VerificationResult",
    "Opportunity",
    "kalshi_market_id",
    "RESOLVED_THRESHOLD",
    "DEFAULT_MIN_PROFIT_PERCENT",
    "DEFAULT_MIN_TRUE_ARBITRAGE_PROFIT",
    "DEFAULT_TRANSACTION_FEE",
    "CANDIDATE_SIMILARITY_THRESHOLD",
    "BASIC_SIMILARITY_THRESHOLD",
    "VERIFICATION_CONFIDENCE_THRESHOLD",
    "VERIFICATION_LIMIT",
    "VERIFICATION_BATCH_SIZE",
    "VERIFICATION_BATCH_DELAY_SECONDS",
]
