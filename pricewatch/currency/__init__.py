"""
Currency normalization.
"""

from pricewatch.currency.exchange_rates import FALLBACK_RATES, ExchangeRateService

__all__ = ["ExchangeRateService", "FALLBACK_RATES"]
