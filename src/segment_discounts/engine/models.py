"""
Data models for the discount pipeline.

Uses dataclasses for structured, type-safe data representation. Money values
are kept as floats in currency units; rounding to cents happens only in the
``to_dict`` presentation methods.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union


SEGMENT_TARGET = "segment"
CUSTOMER_TARGET = "customer"


def money(value: float) -> float:
    """Round a currency amount for presentation."""
    return round(float(value), 2)


@dataclass
class TraceStep:
    """A single step in the discount resolution trace."""
    step: str
    description: str
    value: Optional[str] = None


class Traceable:
    """Mixin for results that collect a trace and warnings."""

    def add_trace(self, step: str, description: str, value: str = None):
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def add_warning(self, warning: str):
        if warning not in self.warnings:
            self.warnings.append(warning)

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"• {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"• {t.step}: {t.description}")
        return "\n".join(lines)


@dataclass(frozen=True)
class Segment:
    """A customer segment as published by the Catalog/Customer Service."""
    id: str
    name: str
    query: Optional[str] = None


@dataclass(frozen=True)
class SegmentTarget:
    key: str


@dataclass(frozen=True)
class CustomerTarget:
    key: str


TargetRef = Union[SegmentTarget, CustomerTarget]


@dataclass
class Rule:
    """A (collection, percent-off) pair owned by one plan."""
    category_id: str
    percent_off: float
    id: Optional[str] = None
    discount_plan_id: Optional[str] = None


@dataclass
class DiscountPlan:
    """A named bundle of percentage rules targeting a segment or a customer."""
    id: str
    name: str
    target_type: str
    target_key: str
    rules: list[Rule] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def target(self) -> TargetRef:
        if self.target_type == CUSTOMER_TARGET:
            return CustomerTarget(self.target_key)
        return SegmentTarget(self.target_key)

    @property
    def max_percent(self) -> float:
        """Highest single rule percentage; 0 for a plan without rules."""
        return max((rule.percent_off for rule in self.rules), default=0)


@dataclass
class CartLine:
    """A single cart line for the current request."""
    product_id: str
    variant_id: str
    quantity: int
    unit_price: float
    title: str = ""

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity


@dataclass
class CollectionInfo:
    """Collection metadata from the catalog."""
    id: str
    title: str = ""
    handle: str = ""


@dataclass
class CollectionOffer:
    """A discounted collection as shown to the shopper."""
    id: str
    title: str
    handle: str
    percent_off: float

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "handle": self.handle,
            "percentOff": self.percent_off,
        }


@dataclass
class Offer(Traceable):
    """Read-only, display-oriented summary of a customer's applicable discount."""
    discount_applicable: bool
    segment_name: Optional[str] = None
    plan_name: Optional[str] = None
    collections: Optional[list[CollectionOffer]] = None
    highest_discount_rate: Optional[float] = None
    warnings: list[str] = field(default_factory=list)
    trace: list[TraceStep] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Offer payload; optional fields are omitted when unset."""
        payload = {"discountApplicable": self.discount_applicable}
        if self.segment_name is not None:
            payload["segmentName"] = self.segment_name
        if self.plan_name is not None:
            payload["planName"] = self.plan_name
        if self.collections is not None:
            payload["collections"] = [c.to_dict() for c in self.collections]
        if self.highest_discount_rate is not None:
            payload["highestDiscountRate"] = self.highest_discount_rate
        return payload


@dataclass
class LineDiscount:
    """Discount outcome for one cart line."""
    product_id: str
    variant_id: str
    quantity: int
    percent_off: float
    original_price: float
    discount_amount: float
    discounted_price: float
    collection_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "collectionId": self.collection_id,
            "percentOff": self.percent_off,
            "originalPrice": money(self.original_price),
            "discountedPrice": money(self.discounted_price),
            "discountAmount": money(self.discount_amount),
        }


@dataclass
class DiscountSummary:
    """Aggregated discount calculation over a cart."""
    lines: list[LineDiscount] = field(default_factory=list)
    total_original_price: float = 0.0
    total_discount_amount: float = 0.0
    segment: Optional[str] = None
    plan_name: Optional[str] = None

    @property
    def total_discounted_price(self) -> float:
        return self.total_original_price - self.total_discount_amount

    @property
    def savings_percentage(self) -> float:
        if self.total_original_price == 0:
            return 0.0
        return self.total_discount_amount / self.total_original_price * 100

    @property
    def applicable_discounts(self) -> list[LineDiscount]:
        return [line for line in self.lines if line.percent_off > 0]

    @property
    def highest_discount_rate(self) -> float:
        return max((line.percent_off for line in self.applicable_discounts), default=0)

    def to_dict(self) -> dict:
        applicable = self.applicable_discounts
        return {
            "segment": self.segment,
            "planName": self.plan_name,
            "totalOriginalPrice": money(self.total_original_price),
            "totalDiscountAmount": money(self.total_discount_amount),
            "totalDiscountedPrice": money(self.total_discounted_price),
            "savingsPercentage": money(self.savings_percentage),
            "applicableDiscounts": [line.to_dict() for line in applicable],
            "summary": {
                "itemsWithDiscount": len(applicable),
                "totalItems": len(self.lines),
                "highestDiscountRate": self.highest_discount_rate,
            },
        }


@dataclass
class AppliedDiscount:
    """Percentage discount attached to a draft order line."""
    percent: float
    title: str = "Segment Discount"
    description: Optional[str] = None

    def to_input(self) -> dict:
        return {
            "value": self.percent,
            "valueType": "PERCENTAGE",
            "title": self.title,
            "description": self.description or f"{self.percent:g}% off for segment members",
        }


@dataclass
class DraftOrderLine:
    """A line submitted to the Order Sink."""
    variant_id: str
    quantity: int
    applied_discount: Optional[AppliedDiscount] = None

    def to_input(self) -> dict:
        line = {"variantId": self.variant_id, "quantity": self.quantity}
        if self.applied_discount is not None:
            line["appliedDiscount"] = self.applied_discount.to_input()
        return line


@dataclass
class DraftOrder:
    """The order materialized by the Order Sink."""
    id: str
    invoice_url: Optional[str] = None
    name: Optional[str] = None
    status: Optional[str] = None
    total_price: str = "0.00"
    subtotal_price: str = "0.00"
    total_tax: str = "0.00"
    total_discounts: str = "0.00"
    currency: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def reference(self) -> str:
        return self.invoice_url or self.id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "invoiceUrl": self.invoice_url,
            "status": self.status,
            "totalPrice": self.total_price,
            "subtotalPrice": self.subtotal_price,
            "totalTax": self.total_tax,
            "totalDiscounts": self.total_discounts,
            "currency": self.currency,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


class OrderState(str, Enum):
    """Per-request progress of the order construction path."""
    RECEIVED = "RECEIVED"
    VALIDATED = "VALIDATED"
    SEGMENT_MATCHED = "SEGMENT_MATCHED"
    NO_MATCH = "NO_MATCH"
    PLAN_SELECTED = "PLAN_SELECTED"
    NO_PLAN = "NO_PLAN"
    DISCOUNTS_COMPUTED = "DISCOUNTS_COMPUTED"
    ORDER_SUBMITTED = "ORDER_SUBMITTED"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


@dataclass
class OrderResult(Traceable):
    """Outcome of the order construction path."""
    discount_applicable: bool
    state: OrderState
    summary: DiscountSummary = field(default_factory=DiscountSummary)
    draft_order: Optional[DraftOrder] = None
    idempotency_key: Optional[str] = None
    message: Optional[str] = None
    warnings: list[str] = field(default_factory=list)
    trace: list[TraceStep] = field(default_factory=list)

    @property
    def order_reference(self) -> Optional[str]:
        return self.draft_order.reference if self.draft_order else None

    def to_dict(self) -> dict:
        payload = {
            "success": True,
            "discountApplicable": self.discount_applicable,
            "orderReference": self.order_reference,
            "discountSummary": self.summary.to_dict(),
        }
        if self.draft_order is not None:
            payload["draftOrder"] = self.draft_order.to_dict()
            payload["idempotencyKey"] = self.idempotency_key
        if self.message:
            payload["message"] = self.message
        return payload
