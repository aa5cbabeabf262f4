"""
Prediction Market Arbitrage Terminal
====================================

Matching de mercados e detecção de arbitragem entre Polymarket e Kalshi.
"""

from .main import ArbitrageScanner, MarketsSnapshot, ScanResult

__all__ = [
    "ArbitrageScanner",
    "MarketsSnapshot",
    "ScanResult",
]
