from pricewatch.storage.base import (
    NewAlert,
    NewTextSnapshot,
    PricingStore,
    StoredPricingSnapshot,
    StoredTextSnapshot,
)
from pricewatch.storage.sqlalchemy_storage import SQLAlchemyPricingStore

__all__ = [
    "NewAlert",
    "NewTextSnapshot",
    "PricingStore",
    "SQLAlchemyPricingStore",
    "StoredPricingSnapshot",
    "StoredTextSnapshot",
]
