"""
Plan Importer - Validates and loads discount plans from CSV or Excel.

One row per rule:

    plan_name,target_type,target_key,category_id,percent_off

Rows sharing (plan_name, target_type, target_key) form one plan. An existing
plan with the same target has its name and rules replaced.
"""
import logging
from pathlib import Path
from typing import Optional

import pandas as pd

from ..engine.models import DiscountPlan, Rule, SEGMENT_TARGET
from ..services.plan_service import PlanService

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ['plan_name', 'target_key', 'category_id', 'percent_off']


def read_plan_sheet(path: Path) -> pd.DataFrame:
    """Read a plan sheet as strings with blanks normalized to ''."""
    if path.suffix.lower() in ('.xlsx', '.xls'):
        df = pd.read_excel(path, dtype=str)
    else:
        df = pd.read_csv(path, dtype=str)
    df = df.fillna('')
    df.columns = [c.strip() for c in df.columns]
    for col in df.columns:
        df[col] = df[col].astype(str).str.strip()
    return df


def parse_row(row: dict, line_num: int) -> tuple[Optional[tuple], Optional[Rule], list[str]]:
    """
    Validate and parse one sheet row.

    Returns (plan_key, rule, errors) - rule is None if validation failed.
    """
    errors = []
    plan_name = row.get('plan_name', '')
    target_type = (row.get('target_type') or SEGMENT_TARGET).lower()
    target_key = row.get('target_key', '')
    category_id = row.get('category_id', '')

    if not plan_name:
        errors.append(f"Line {line_num}: plan_name is required")
    if not target_key:
        errors.append(f"Line {line_num}: target_key is required")
    if not category_id:
        errors.append(f"Line {line_num}: category_id is required")

    try:
        percent_off = float(row.get('percent_off', ''))
    except ValueError:
        errors.append(f"Line {line_num}: percent_off must be numeric")
        return None, None, errors

    if not 0 <= percent_off <= 100:
        errors.append(f"Line {line_num}: percent_off must be between 0 and 100")

    if errors:
        return None, None, errors

    return (plan_name, target_type, target_key), Rule(category_id=category_id, percent_off=percent_off), []


def import_plans(
    path: Path,
    service: PlanService,
    verbose: bool = True,
) -> tuple[bool, list[DiscountPlan], list[str]]:
    """
    Import plans from a sheet. Nothing is written if any row is invalid.

    Returns (success, plans, errors).
    """
    if not path.exists():
        return False, [], [f"Plan sheet not found: {path}"]

    df = read_plan_sheet(path)
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        return False, [], [f"Missing columns: {', '.join(missing)}"]

    all_errors = []
    grouped: dict[tuple, list[Rule]] = {}
    for line_num, row in enumerate(df.to_dict(orient='records'), start=2):  # +2 for header row
        plan_key, rule, errors = parse_row(row, line_num)
        if errors:
            all_errors.extend(errors)
        else:
            grouped.setdefault(plan_key, []).append(rule)

    if all_errors:
        if verbose:
            for err in all_errors:
                logger.error(err)
        return False, [], all_errors

    imported = []
    for (plan_name, target_type, target_key), rules in grouped.items():
        existing = service.store.find_plan_by_target(target_type, target_key)
        try:
            if existing:
                plan = service.update_plan(existing.id, {'name': plan_name, 'rules': rules})
            else:
                plan = service.create_plan(DiscountPlan(
                    id='', name=plan_name, target_type=target_type, target_key=target_key, rules=rules,
                ))
        except ValueError as e:
            all_errors.append(f"Plan '{plan_name}': {e}")
            continue
        imported.append(plan)

    if verbose:
        logger.info("Imported %d plan(s) from %s", len(imported), path)

    return not all_errors, imported, all_errors
