"""
Discount Calculator - applies resolved collection discounts to cart lines.

For each line, the best percentage among the collections the product belongs
to is applied (ties keep the first collection in resolution order). Lines are
checked concurrently with a bounded thread pool; within a line, collections
that cannot beat the current best are skipped and the scan stops once the
plan's ceiling is reached, which leaves the result unchanged.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Protocol

from .models import CartLine, DiscountSummary, LineDiscount

logger = logging.getLogger(__name__)


class MembershipOracle(Protocol):
    """Answers whether a product belongs to a collection."""

    def belongs_to_collection(self, product_id: str, collection_id: str) -> bool:
        ...


class DiscountCalculator:
    """Computes per-line and cart-level discount amounts."""

    def __init__(self, oracle: MembershipOracle, max_workers: int = 8):
        self.oracle = oracle
        self.max_workers = max(1, max_workers)

    def _is_member(self, product_id: str, collection_id: str) -> bool:
        try:
            return bool(self.oracle.belongs_to_collection(product_id, collection_id))
        except Exception:
            logger.warning(
                "Membership check raised for product %s / collection %s; treating as non-member",
                product_id, collection_id, exc_info=True,
            )
            return False

    def best_collection(self, line: CartLine, resolved: dict[str, float]) -> tuple[Optional[str], float]:
        """Return (collection_id, percent_off) of the best matching collection."""
        if not resolved:
            return None, 0
        ceiling = max(resolved.values())
        best_id = None
        best_percent = 0

        for collection_id, percent_off in resolved.items():
            if best_percent >= ceiling:
                break
            if percent_off <= best_percent:
                continue
            if self._is_member(line.product_id, collection_id):
                best_id = collection_id
                best_percent = percent_off

        return best_id, best_percent

    def calculate_line(self, line: CartLine, resolved: dict[str, float]) -> LineDiscount:
        collection_id, percent_off = self.best_collection(line, resolved)
        line_total = line.line_total
        discount_amount = line_total * percent_off / 100
        return LineDiscount(
            product_id=line.product_id,
            variant_id=line.variant_id,
            quantity=line.quantity,
            percent_off=percent_off,
            original_price=line_total,
            discount_amount=discount_amount,
            discounted_price=line_total - discount_amount,
            collection_id=collection_id,
        )

    def calculate(self, lines: list[CartLine], resolved: dict[str, float]) -> DiscountSummary:
        """Discount every line and aggregate totals, preserving cart order."""
        summary = DiscountSummary()
        if not lines:
            return summary

        workers = min(self.max_workers, len(lines))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(lambda line: self.calculate_line(line, resolved), lines))

        for result in results:
            summary.lines.append(result)
            summary.total_original_price += result.original_price
            summary.total_discount_amount += result.discount_amount

        logger.info(
            "Discounted %d of %d line(s), total discount %.2f",
            len(summary.applicable_discounts), len(lines), summary.total_discount_amount,
        )
        return summary
