"""
Plan Selector - picks the discount plan that applies to a matched segment.

Candidate plans are fetched from the Plan Store by both the segment's id and
its name, since historical plans store either one as the target key. The
choice between candidates is delegated to a PlanSelectionStrategy.
"""
import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional, Protocol

from .models import DiscountPlan, Segment, SEGMENT_TARGET

logger = logging.getLogger(__name__)


class PlanSource(Protocol):
    """The read side of the Plan Store used by the selector."""

    def find_segment_plans(self, target_keys: list[str]) -> list[DiscountPlan]:
        ...


class PlanSelectionStrategy(ABC):
    """Chooses the effective plan among candidates."""
    name = "abstract"

    @abstractmethod
    def select(self, plans: list[DiscountPlan]) -> Optional[DiscountPlan]:
        raise NotImplementedError


class BestPlanStrategy(PlanSelectionStrategy):
    """
    Single best plan, not a merge.

    The plan with the strictly greatest max rule percentage wins; ties keep
    the first plan in fetch order. Plans whose best rule is 0% never win.
    """
    name = "best"

    def select(self, plans: list[DiscountPlan]) -> Optional[DiscountPlan]:
        best_plan = None
        best_percent = 0
        for plan in plans:
            plan_max = plan.max_percent
            if plan_max > best_percent:
                best_percent = plan_max
                best_plan = plan
        return best_plan


class MergePlansStrategy(PlanSelectionStrategy):
    """
    Merge every applicable plan into one synthetic plan.

    The rule resolver then keeps the per-collection maximum across all plans.
    """
    name = "merge"

    def select(self, plans: list[DiscountPlan]) -> Optional[DiscountPlan]:
        applicable = [plan for plan in plans if plan.max_percent > 0]
        if not applicable:
            return None
        if len(applicable) == 1:
            return applicable[0]

        rules = [rule for plan in applicable for rule in plan.rules]
        return DiscountPlan(
            id="+".join(plan.id for plan in applicable),
            name=" + ".join(plan.name for plan in applicable),
            target_type=SEGMENT_TARGET,
            target_key=applicable[0].target_key,
            rules=rules,
        )


STRATEGIES = {
    BestPlanStrategy.name: BestPlanStrategy,
    MergePlansStrategy.name: MergePlansStrategy,
}


def get_strategy(name: str) -> PlanSelectionStrategy:
    """Look up a strategy by its configured name."""
    try:
        return STRATEGIES[name]()
    except KeyError:
        raise ValueError(
            f"Unknown plan selection strategy '{name}', must be one of: {sorted(STRATEGIES)}"
        )


def candidate_keys(segments: Iterable[Segment]) -> list[str]:
    """Target keys to query: each segment's id, then its name, without duplicates."""
    keys = []
    for segment in segments:
        for key in (segment.id, segment.name):
            if key and key not in keys:
                keys.append(key)
    return keys


class PlanSelector:
    """Fetches candidate plans for segments and applies the selection strategy."""

    def __init__(self, plan_source: PlanSource, strategy: Optional[PlanSelectionStrategy] = None):
        self.plan_source = plan_source
        self.strategy = strategy or BestPlanStrategy()

    def find_candidates(self, segments: Iterable[Segment]) -> list[DiscountPlan]:
        keys = candidate_keys(segments)
        if not keys:
            return []
        plans = self.plan_source.find_segment_plans(keys)
        logger.info("Found %d candidate plan(s) for target keys %s", len(plans), keys)
        return plans

    def select(self, segments: Iterable[Segment]) -> Optional[DiscountPlan]:
        """Return the selected plan, or None when no plan has a positive rule."""
        plan = self.strategy.select(self.find_candidates(segments))
        if plan is None:
            logger.info("No applicable plan (strategy=%s)", self.strategy.name)
        return plan
