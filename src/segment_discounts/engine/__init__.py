"""Engine subpackage - core segment discount resolution logic."""
from .discount_engine import SegmentDiscountEngine
from .models import CartLine, DiscountPlan, Offer, OrderResult, Rule, Segment

__all__ = ['SegmentDiscountEngine', 'CartLine', 'DiscountPlan', 'Offer', 'OrderResult', 'Rule', 'Segment']
