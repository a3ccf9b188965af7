import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from segment_discounts.services.plan_service import PlanService
from segment_discounts.store.db import init_db
from segment_discounts.store.plan_store import PlanStore


def check():
    init_db()
    store = PlanStore()
    service = PlanService(store)

    plans = service.list_plans()
    print(f"=== Discount Plans ({len(plans)}) ===")
    for plan in plans:
        print(f"\n{plan.name}  [{plan.target_type}: {plan.target_key}]  id={plan.id}")
        if not plan.rules:
            print("  (no rules)")
        for rule in plan.rules:
            print(f"  collection {rule.category_id}: {rule.percent_off:g}% off")

    print("\n=== Stats ===")
    for key, value in service.get_stats().items():
        print(f"{key}: {value}")

    segments = store.list_seeded_segments()
    print(f"\n=== Seeded Segments ({len(segments)}) ===")
    for segment_id in segments:
        print(f"  {segment_id}")


if __name__ == "__main__":
    check()
