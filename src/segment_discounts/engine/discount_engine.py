"""
Segment Discount Engine - resolves a shopper's discount and builds order lines.

Resolution order:
1. Normalize identifiers
2. Match the shopper's tags to one segment
3. Select the discount plan for that segment
4. Collapse the plan's rules into collection -> percent off
5. Offer mode: attach collection metadata (best effort)
   Order mode: discount each cart line and submit a draft order
"""
import logging
import uuid
from typing import Optional, Protocol

from . import identifiers
from .discount_calculator import DiscountCalculator
from .errors import (
    CustomerNotFoundError,
    DiscountError,
    InputError,
    MissingCredentialsError,
    UpstreamError,
)
from .models import (
    AppliedDiscount,
    CartLine,
    CollectionOffer,
    DraftOrderLine,
    Offer,
    OrderResult,
    OrderState,
    Segment,
)
from .plan_selector import PlanSelectionStrategy, PlanSelector
from .rule_resolver import resolve_rules
from .segment_matcher import SegmentCatalog, SegmentMatcher

logger = logging.getLogger(__name__)


class UpstreamClients(Protocol):
    """Per-shop access to the Catalog/Customer Service and the Order Sink."""

    def catalog_for(self, shop: Optional[str] = None):
        ...

    def order_sink_for(self, shop: Optional[str] = None):
        ...


class SegmentDiscountEngine:
    """
    Stateless per-request pipeline over the Plan Store and upstream services.
    """

    def __init__(
        self,
        plan_store,
        clients: UpstreamClients,
        strategy: Optional[PlanSelectionStrategy] = None,
        matcher: Optional[SegmentMatcher] = None,
        max_workers: int = 8,
    ):
        self.plan_store = plan_store
        self.clients = clients
        self.selector = PlanSelector(plan_store, strategy)
        self.matcher = matcher or SegmentMatcher()
        self.max_workers = max_workers

    # Offer mode

    def _offer_segments(self, shop: Optional[str], offer: Offer):
        """Segment catalog for the offer path, degrading to plan target keys."""
        try:
            catalog = self.clients.catalog_for(shop)
        except MissingCredentialsError as e:
            offer.add_warning(f"Catalog unavailable: {e.message}")
            catalog = None

        if catalog is not None:
            try:
                segments = catalog.fetch_segments()
                offer.add_trace("Segment Catalog", "Fetched segments from catalog", str(len(segments)))
                return catalog, segments
            except UpstreamError as e:
                logger.warning("Segment catalog fetch failed, using plan target keys: %s", e.message)
                offer.add_warning(f"Segment catalog unavailable: {e.message}")

        keys = self.plan_store.segment_target_keys()
        offer.add_trace("Segment Catalog", "Using plan target keys as segments", str(len(keys)))
        return catalog, [Segment(id=key, name=key) for key in keys]

    def resolve_offer(self, customer_id: str, tags: list[str], shop: Optional[str] = None) -> Offer:
        """
        Read-only offer for storefront display. No side effects.

        Upstream failures degrade to empty collection titles/handles.
        """
        if not customer_id:
            raise InputError("Customer object must contain id and tags")
        if tags is None or not isinstance(tags, list):
            raise InputError("Customer object must contain id and tags")

        offer = Offer(discount_applicable=False)
        offer.add_trace("Customer", "Resolving offer", str(identifiers.customer_gid(customer_id)))

        catalog, segments = self._offer_segments(shop, offer)
        match = self.matcher.match(tags, SegmentCatalog(segments))
        if match is None:
            offer.add_trace("Segment Match", "No segment matched customer tags")
            return offer
        offer.add_trace("Segment Match", f"Matched via {match.strategy} (tag '{match.tag}')", match.segment.name)

        plan = self.selector.select([match.segment])
        if plan is None:
            offer.add_trace("Plan", "No applicable plan for segment")
            return offer
        offer.add_trace("Plan", "Selected plan", plan.name)

        resolved = resolve_rules(plan.rules)
        metadata = {}
        if catalog is not None:
            try:
                metadata = {c.id: c for c in catalog.fetch_collection_metadata(list(resolved))}
            except UpstreamError as e:
                logger.warning("Collection metadata fetch failed: %s", e.message)
                offer.add_warning(f"Collection metadata unavailable: {e.message}")

        collections = []
        for collection_id, percent_off in resolved.items():
            info = metadata.get(collection_id)
            collections.append(CollectionOffer(
                id=collection_id,
                title=info.title if info else "",
                handle=info.handle if info else "",
                percent_off=percent_off,
            ))

        offer.discount_applicable = True
        offer.segment_name = match.segment.name
        offer.plan_name = plan.name
        offer.collections = collections
        offer.highest_discount_rate = plan.max_percent
        offer.add_trace("Collections", "Resolved discounted collections", str(len(collections)))
        return offer

    # Order mode

    def _normalize_lines(self, lines: list[CartLine]) -> list[CartLine]:
        if not lines:
            raise InputError("No items found in cart. Please add products to your cart.")
        normalized = []
        for i, line in enumerate(lines, start=1):
            if not line.product_id or not line.variant_id:
                raise InputError(f"Cart item {i} must have productId and variantId")
            if line.quantity is None or line.quantity < 1:
                raise InputError(f"Cart item {i} must have a positive quantity")
            if line.unit_price is None or line.unit_price < 0:
                raise InputError(f"Cart item {i} must have a non-negative price")
            normalized.append(CartLine(
                product_id=identifiers.product_gid(line.product_id),
                variant_id=identifiers.variant_gid(line.variant_id),
                quantity=line.quantity,
                unit_price=line.unit_price,
                title=line.title,
            ))
        return normalized

    def create_order(
        self,
        shop: str,
        customer_id: str,
        lines: list[CartLine],
        idempotency_key: Optional[str] = None,
    ) -> OrderResult:
        """
        Discount the cart and submit it to the Order Sink.

        No match and no plan return a result without a discount. Upstream and
        Order Sink failures propagate. The submission is not retried.
        """
        state = OrderState.RECEIVED
        if not shop or not customer_id:
            raise InputError("Missing required fields: shop, customerId, or cartItems")
        lines = self._normalize_lines(lines)
        customer_gid = identifiers.customer_gid(customer_id)
        state = OrderState.VALIDATED

        catalog = self.clients.catalog_for(shop)
        customer = catalog.fetch_customer(customer_gid)
        if customer is None:
            raise CustomerNotFoundError("Customer not found")

        match = self.matcher.match(customer.tags, SegmentCatalog(catalog.fetch_segments()))
        if match is None:
            result = OrderResult(discount_applicable=False, state=OrderState.NO_MATCH)
            result.message = "Customer does not belong to any segment with discount plans"
            result.add_trace("Segment Match", "No segment matched customer tags")
            return result
        state = OrderState.SEGMENT_MATCHED

        plan = self.selector.select([match.segment])
        if plan is None:
            result = OrderResult(discount_applicable=False, state=OrderState.NO_PLAN)
            result.summary.segment = match.segment.name
            result.message = "No discount plan found for this segment"
            result.add_trace("Plan", "No applicable plan for segment", match.segment.name)
            return result
        state = OrderState.PLAN_SELECTED

        resolved = resolve_rules(plan.rules)
        calculator = DiscountCalculator(catalog, max_workers=self.max_workers)
        summary = calculator.calculate(lines, resolved)
        summary.segment = match.segment.name
        summary.plan_name = plan.name
        state = OrderState.DISCOUNTS_COMPUTED

        result = OrderResult(discount_applicable=bool(summary.applicable_discounts), state=state, summary=summary)
        result.add_trace("Segment Match", f"Matched via {match.strategy}", match.segment.name)
        result.add_trace("Plan", "Selected plan", plan.name)
        result.add_trace(
            "Discounts", f"{len(summary.applicable_discounts)} of {len(lines)} line(s) discounted",
            f"${summary.total_discount_amount:.2f}",
        )
        if not summary.applicable_discounts:
            result.message = "No cart items belong to a discounted collection"
            return result

        order_lines = []
        for line_discount in summary.lines:
            applied = AppliedDiscount(line_discount.percent_off) if line_discount.percent_off > 0 else None
            order_lines.append(DraftOrderLine(
                variant_id=line_discount.variant_id,
                quantity=line_discount.quantity,
                applied_discount=applied,
            ))

        key = idempotency_key or str(uuid.uuid4())
        note = f"Auto-generated order with {summary.savings_percentage:.2f}% total discount applied"
        state = OrderState.ORDER_SUBMITTED
        try:
            draft_order = self.clients.order_sink_for(shop).create_draft_order(
                customer_gid, order_lines, key, note=note,
            )
        except DiscountError:
            logger.error(
                "Order submission failed for customer %s (key=%s): %s -> %s",
                customer_gid, key, state.value, OrderState.FAILED.value,
            )
            raise

        result.state = OrderState.SUCCEEDED
        result.draft_order = draft_order
        result.idempotency_key = key
        result.message = "Draft order created successfully with discounts applied"
        result.add_trace("Order", "Draft order created", draft_order.reference)
        return result
