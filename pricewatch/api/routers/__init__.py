"""
pricewatch/api/routers package marker.
"""

from pricewatch.api.routers.pricing_checks import router as pricing_checks_router

__all__ = ["pricing_checks_router"]
