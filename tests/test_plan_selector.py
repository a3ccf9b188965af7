import pytest

from segment_discounts.engine.models import DiscountPlan, Rule, Segment
from segment_discounts.engine.plan_selector import (
    BestPlanStrategy,
    MergePlansStrategy,
    PlanSelector,
    candidate_keys,
    get_strategy,
)
from segment_discounts.engine.rule_resolver import resolve_rules

VIP = Segment(id="gid://shopify/Segment/1", name="VIP")


class ListPlanSource:
    def __init__(self, plans):
        self.plans = plans
        self.requested_keys = []

    def find_segment_plans(self, target_keys):
        self.requested_keys.append(list(target_keys))
        return [p for p in self.plans if p.target_key in target_keys]


def make_plan(plan_id, percents, target_key="VIP"):
    return DiscountPlan(
        id=plan_id,
        name=f"Plan {plan_id}",
        target_type="segment",
        target_key=target_key,
        rules=[Rule(category_id=str(100 + i), percent_off=p) for i, p in enumerate(percents)],
    )


def test_higher_max_percent_wins():
    low = make_plan("low", [5, 10])
    high = make_plan("high", [25])
    selector = PlanSelector(ListPlanSource([low, high]))
    assert selector.select([VIP]).id == "high"


def test_tie_keeps_first_in_fetch_order():
    first = make_plan("first", [20])
    second = make_plan("second", [20])
    assert BestPlanStrategy().select([first, second]).id == "first"
    assert BestPlanStrategy().select([second, first]).id == "second"


def test_selection_is_deterministic():
    plans = [make_plan("a", [10]), make_plan("b", [30, 5]), make_plan("c", [30])]
    selector = PlanSelector(ListPlanSource(plans))
    picks = {selector.select([VIP]).id for _ in range(10)}
    assert picks == {"b"}


def test_plans_without_positive_rules_are_ignored():
    empty = make_plan("empty", [])
    zero = make_plan("zero", [0, 0])
    assert PlanSelector(ListPlanSource([empty, zero])).select([VIP]) is None


def test_no_candidates():
    assert PlanSelector(ListPlanSource([])).select([VIP]) is None


def test_candidates_are_fetched_by_id_and_name():
    by_id = make_plan("by-id", [10], target_key=VIP.id)
    by_name = make_plan("by-name", [15], target_key="VIP")
    source = ListPlanSource([by_id, by_name])

    candidates = PlanSelector(source).find_candidates([VIP])

    assert source.requested_keys == [[VIP.id, "VIP"]]
    assert {p.id for p in candidates} == {"by-id", "by-name"}


def test_candidate_keys_deduplicates():
    segments = [Segment(id="VIP", name="VIP"), Segment(id="x", name="")]
    assert candidate_keys(segments) == ["VIP", "x"]


def test_merge_strategy_keeps_per_collection_max():
    a = DiscountPlan(id="a", name="A", target_type="segment", target_key="VIP",
                     rules=[Rule("100", 10), Rule("200", 30)])
    b = DiscountPlan(id="b", name="B", target_type="segment", target_key="VIP",
                     rules=[Rule("100", 20)])
    zero = make_plan("zero", [0])

    merged = MergePlansStrategy().select([a, zero, b])

    assert merged.id == "a+b"
    assert merged.name == "A + B"
    assert resolve_rules(merged.rules) == {"100": 20, "200": 30}


def test_merge_strategy_single_plan_passthrough():
    only = make_plan("only", [10])
    assert MergePlansStrategy().select([only]) is only
    assert MergePlansStrategy().select([]) is None


def test_get_strategy():
    assert isinstance(get_strategy("best"), BestPlanStrategy)
    assert isinstance(get_strategy("merge"), MergePlansStrategy)
    with pytest.raises(ValueError, match="Unknown plan selection strategy"):
        get_strategy("cheapest")
