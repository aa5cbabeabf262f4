"""Collectors module - Raw market collection from prediction market platforms."""

from .kalshi import KalshiCollector
from .polymarket import PolymarketCollector

__all__ = [
    "KalshiCollector",
    "PolymarketCollector",
]
