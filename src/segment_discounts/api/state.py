"""
Shared service instances for the API, exposed as FastAPI dependencies.
"""
from functools import lru_cache

from ..clients.factory import ShopClients
from ..config.settings import get_settings
from ..engine import SegmentDiscountEngine
from ..engine.plan_selector import get_strategy
from ..services.plan_service import PlanService
from ..store.db import init_db
from ..store.plan_store import PlanStore


@lru_cache
def get_plan_store() -> PlanStore:
    init_db()
    return PlanStore()


@lru_cache
def get_engine() -> SegmentDiscountEngine:
    settings = get_settings()
    return SegmentDiscountEngine(
        plan_store=get_plan_store(),
        clients=ShopClients(settings),
        strategy=get_strategy(settings.plan_selection_strategy),
        max_workers=settings.membership_max_workers,
    )


@lru_cache
def get_plan_service() -> PlanService:
    return PlanService(get_plan_store())
