from venue_pricing.repositories.base import (
    DateRange,
    IHierarchyRepository,
    IRatesheetRepository,
    ISurgeConfigRepository,
)
from venue_pricing.repositories.memory import InMemoryPricingRepository

__all__ = [
    "DateRange",
    "IHierarchyRepository",
    "IRatesheetRepository",
    "ISurgeConfigRepository",
    "InMemoryPricingRepository",
]
