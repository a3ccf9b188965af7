"""
Rule Resolver - collapses a plan's rules into collection -> percent off.
"""
from typing import Iterable

from .identifiers import to_numeric
from .models import Rule


def resolve_rules(rules: Iterable[Rule]) -> dict[str, float]:
    """
    Keep the highest percent off per collection.

    Collection ids are keyed in bare form so that a collection stored once as
    a canonical id and once as a number collapses to one entry. The result is
    independent of rule order.
    """
    resolved: dict[str, float] = {}
    for rule in rules:
        key = str(to_numeric(rule.category_id))
        current = resolved.get(key)
        if current is None or rule.percent_off > current:
            resolved[key] = rule.percent_off
    return resolved
