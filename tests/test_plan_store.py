from segment_discounts.engine.models import CustomerTarget, DiscountPlan, Rule, SegmentTarget


def add(store, plan_id, target_key, target_type="segment", percents=(10,)):
    return store.add_plan(DiscountPlan(
        id=plan_id,
        name=f"Plan {plan_id}",
        target_type=target_type,
        target_key=target_key,
        rules=[Rule(str(100 + i), p) for i, p in enumerate(percents)],
    ))


def test_find_segment_plans_by_any_key(plan_store):
    add(plan_store, "a", "VIP")
    add(plan_store, "b", "gid://shopify/Segment/1")
    add(plan_store, "c", "Wholesale")
    add(plan_store, "d", "VIP", target_type="customer")

    found = plan_store.find_segment_plans(["gid://shopify/Segment/1", "VIP"])

    assert [p.id for p in found] == ["a", "b"]


def test_find_segment_plans_empty_keys(plan_store):
    add(plan_store, "a", "VIP")
    assert plan_store.find_segment_plans([]) == []


def test_segment_target_keys(plan_store):
    add(plan_store, "a", "VIP")
    add(plan_store, "b", "Wholesale")
    add(plan_store, "c", "42", target_type="customer")
    assert plan_store.segment_target_keys() == ["VIP", "Wholesale"]


def test_find_plan_by_target(plan_store):
    add(plan_store, "a", "VIP", percents=(5, 15))
    plan = plan_store.find_plan_by_target("segment", "VIP")
    assert plan.id == "a"
    assert plan.max_percent == 15
    assert plan_store.find_plan_by_target("segment", "Other") is None


def test_replace_missing_plan(plan_store):
    plan = DiscountPlan(id="nope", name="x", target_type="segment", target_key="VIP")
    assert plan_store.replace_plan(plan) is None


def test_count_plans(plan_store):
    assert plan_store.count_plans() == 0
    add(plan_store, "a", "VIP")
    assert plan_store.count_plans() == 1


def test_record_customer_segments_is_idempotent(plan_store):
    plan_store.record_customer_segments("gid://shopify/Customer/42", "a@example.com", ["vip", "gold"])
    plan_store.record_customer_segments("gid://shopify/Customer/42", "a@example.com", ["vip"])
    plan_store.record_customer_segments("gid://shopify/Customer/43", None, ["wholesale"])

    assert plan_store.list_seeded_segments() == ["gold", "vip", "wholesale"]


def test_plan_target_variant():
    segment_plan = DiscountPlan(id="a", name="A", target_type="segment", target_key="VIP")
    customer_plan = DiscountPlan(id="b", name="B", target_type="customer", target_key="42")
    assert segment_plan.target == SegmentTarget("VIP")
    assert customer_plan.target == CustomerTarget("42")
