"""
Plan Service - CRUD and write-time validation for discount plans.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

from ..engine.identifiers import GID_PREFIX, to_numeric
from ..engine.models import CUSTOMER_TARGET, DiscountPlan, Rule, SEGMENT_TARGET
from ..store.plan_store import PlanStore

logger = logging.getLogger(__name__)

VALID_TARGET_TYPES = {SEGMENT_TARGET, CUSTOMER_TARGET}


@dataclass
class ValidationResult:
    """Result of plan validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class PlanService:
    """Service for managing discount plans."""

    def __init__(self, store: PlanStore):
        self.store = store

    def list_plans(self, target_type: Optional[str] = None) -> list[DiscountPlan]:
        return self.store.list_plans(target_type)

    def get_plan(self, plan_id: str) -> Optional[DiscountPlan]:
        return self.store.get_plan(plan_id)

    def create_plan(self, plan: DiscountPlan) -> DiscountPlan:
        """Create a plan; raises ValueError with the validation errors."""
        validation = self.validate_plan(plan)
        if not validation.valid:
            raise ValueError("; ".join(validation.errors))
        for warning in validation.warnings:
            logger.warning("Plan '%s': %s", plan.name, warning)
        return self.store.add_plan(plan)

    def update_plan(self, plan_id: str, updates: dict) -> DiscountPlan:
        """Update name/target/rules of an existing plan."""
        plan = self.store.get_plan(plan_id)
        if not plan:
            raise LookupError(f"Plan with ID '{plan_id}' not found")

        for key, value in updates.items():
            if value is None:
                raise ValueError(f"Field '{key}' cannot be null")
            if key == 'rules':
                plan.rules = [r if isinstance(r, Rule) else Rule(**r) for r in value]
            elif hasattr(plan, key) and key not in ('id', 'created_at', 'updated_at'):
                setattr(plan, key, value)

        validation = self.validate_plan(plan, is_new=False)
        if not validation.valid:
            raise ValueError("; ".join(validation.errors))
        return self.store.replace_plan(plan)

    def delete_plan(self, plan_id: str) -> bool:
        if not self.store.delete_plan(plan_id):
            raise LookupError(f"Plan with ID '{plan_id}' not found")
        return True

    def validate_plan(self, plan: DiscountPlan, is_new: bool = True) -> ValidationResult:
        """Validate a plan before saving; is_new is False when updating it in place."""
        result = ValidationResult(valid=True)

        if is_new and plan.id and self.store.get_plan(plan.id):
            result.errors.append(f"Plan with ID '{plan.id}' already exists")

        if not plan.name or not plan.name.strip():
            result.errors.append("Name is required")

        if plan.target_type not in VALID_TARGET_TYPES:
            result.errors.append(
                f"Invalid target type '{plan.target_type}', must be one of: {sorted(VALID_TARGET_TYPES)}"
            )

        if not plan.target_key or not plan.target_key.strip():
            result.errors.append("Target key is required")

        seen = set()
        for i, rule in enumerate(plan.rules, start=1):
            if not rule.category_id or not str(rule.category_id).strip():
                result.errors.append(f"Rule {i}: collection is required")
            try:
                percent = float(rule.percent_off)
            except (TypeError, ValueError):
                result.errors.append(f"Rule {i}: percent off must be a number")
                continue
            if not 0 <= percent <= 100:
                result.errors.append(f"Rule {i}: percent off must be between 0 and 100")
            collection_key = str(to_numeric(rule.category_id))
            if collection_key in seen:
                result.warnings.append(
                    f"Collection '{rule.category_id}' appears more than once; the highest percentage applies"
                )
            seen.add(collection_key)

        if not plan.rules:
            result.warnings.append("Plan has no rules and will never be selected")

        # Going forward, segment plans are keyed by segment name
        if plan.target_type == SEGMENT_TARGET and plan.target_key and plan.target_key.startswith(GID_PREFIX):
            result.warnings.append("Target key looks like a segment id; prefer the segment name")

        if plan.target_type == SEGMENT_TARGET and plan.target_key:
            existing = self.store.find_plan_by_target(SEGMENT_TARGET, plan.target_key)
            if existing and existing.id != plan.id:
                result.errors.append(
                    f"A plan already targets segment '{plan.target_key}' ('{existing.name}')"
                )

        result.valid = not result.errors
        return result

    def get_stats(self) -> dict:
        """Get statistics about plans."""
        plans = self.store.list_plans()
        by_target_type = {}
        for plan in plans:
            by_target_type[plan.target_type] = by_target_type.get(plan.target_type, 0) + 1
        return {
            'total': len(plans),
            'rules': sum(len(p.rules) for p in plans),
            'without_rules': sum(1 for p in plans if not p.rules),
            'by_target_type': by_target_type,
        }
