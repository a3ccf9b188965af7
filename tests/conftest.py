import os
import sys
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from segment_discounts.engine import SegmentDiscountEngine
from segment_discounts.engine.models import DiscountPlan, DraftOrder, Rule, Segment
from segment_discounts.services.plan_service import PlanService
from segment_discounts.store.db import Base, init_db
from segment_discounts.store.plan_store import PlanStore

from fakes import FakeCatalog, FakeClients

VIP = Segment(id="gid://shopify/Segment/1", name="VIP")
WHOLESALE = Segment(id="gid://shopify/Segment/2", name="Wholesale")


@pytest.fixture
def session_factory():
    """Fresh in-memory plan store schema per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def plan_store(session_factory):
    return PlanStore(session_factory)


@pytest.fixture
def plan_service(plan_store):
    return PlanService(plan_store)


@pytest.fixture
def vip_plan(plan_store):
    """VIP gets 10% on collection 100 and 25% on collection 200."""
    return plan_store.add_plan(DiscountPlan(
        id="plan-vip",
        name="VIP Plan",
        target_type="segment",
        target_key="VIP",
        rules=[
            Rule(category_id="gid://shopify/Collection/100", percent_off=10),
            Rule(category_id="200", percent_off=25),
        ],
    ))


@pytest.fixture
def catalog():
    return FakeCatalog(
        segments=[VIP, WHOLESALE],
        customers={"42": ["vip"], "43": ["regular"], "44": ["wholesale"]},
        memberships={"1": {"200"}, "2": set(), "3": {"100"}},
        collections={"100": ("Shoes", "shoes"), "200": ("Jackets", "jackets")},
    )


@pytest.fixture
def order_sink():
    sink = MagicMock()
    sink.create_draft_order.return_value = DraftOrder(
        id="gid://shopify/DraftOrder/9001",
        name="#D1",
        invoice_url="https://test-shop.myshopify.com/invoices/abc",
        status="OPEN",
        total_price="175.00",
    )
    return sink


@pytest.fixture
def clients(catalog, order_sink):
    return FakeClients(catalog=catalog, sink=order_sink)


@pytest.fixture
def engine(plan_store, clients):
    return SegmentDiscountEngine(plan_store=plan_store, clients=clients, max_workers=4)
