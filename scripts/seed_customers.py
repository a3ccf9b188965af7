"""
Seed the local Customer/Segment tables from the shop's customer list.

Each customer tag becomes a segment the customer belongs to.

Usage:
    python scripts/seed_customers.py [--shop my-shop.myshopify.com]
"""
import argparse
import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from segment_discounts.clients.factory import ShopClients
from segment_discounts.config.settings import get_settings
from segment_discounts.engine.errors import DiscountError
from segment_discounts.engine.segment_matcher import normalize_tags
from segment_discounts.store.db import init_db
from segment_discounts.store.plan_store import PlanStore

logger = logging.getLogger("seed_customers")


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed customers and tag segments")
    parser.add_argument("--shop", help="Shop domain (defaults to SHOPIFY_SHOP)")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    init_db()
    store = PlanStore()
    clients = ShopClients(get_settings())
    try:
        customers = clients.catalog_for(args.shop).list_customers()
    except DiscountError as e:
        logger.error("Could not list customers: %s", e.message)
        return 1
    finally:
        clients.close()

    for customer in customers:
        store.record_customer_segments(customer.id, customer.email, normalize_tags(customer.tags))

    print(f"✅ Seeded {len(customers)} customer(s), {len(store.list_seeded_segments())} segment(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
