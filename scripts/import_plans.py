"""
Import discount plans from a CSV or Excel sheet into the plan store.

Usage:
    python scripts/import_plans.py data/plans.csv
"""
import argparse
import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from segment_discounts.services.plan_service import PlanService
from segment_discounts.store.db import init_db
from segment_discounts.store.plan_import import import_plans
from segment_discounts.store.plan_store import PlanStore


def main() -> int:
    parser = argparse.ArgumentParser(description="Import discount plans from a sheet")
    parser.add_argument("path", type=Path, help="CSV or Excel file, one row per rule")
    parser.add_argument("--quiet", action="store_true", help="Only print the summary")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    init_db()
    service = PlanService(PlanStore())
    success, plans, errors = import_plans(args.path, service, verbose=not args.quiet)

    if not success:
        print(f"❌ Import failed with {len(errors)} error(s)")
        for err in errors:
            print(f"  - {err}")
        return 1

    print(f"✅ Imported {len(plans)} plan(s)")
    for plan in plans:
        print(f"  {plan.name} -> {plan.target_type}:{plan.target_key} ({len(plan.rules)} rules)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
