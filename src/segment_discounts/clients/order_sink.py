"""
Order Sink client - materializes priced draft orders.
"""
import logging
from typing import Optional

from ..engine import identifiers
from ..engine.errors import OrderValidationError, UpstreamError
from ..engine.models import DraftOrder, DraftOrderLine
from .admin_client import AdminGraphQLClient

logger = logging.getLogger(__name__)


DRAFT_ORDER_CREATE = """
mutation draftOrderCreate($input: DraftOrderInput!) {
  draftOrderCreate(input: $input) {
    draftOrder {
      id
      name
      invoiceUrl
      status
      subtotalPriceSet { shopMoney { amount currencyCode } }
      totalPriceSet { shopMoney { amount currencyCode } }
      totalTaxSet { shopMoney { amount currencyCode } }
      totalDiscountsSet { shopMoney { amount currencyCode } }
      createdAt
      updatedAt
    }
    userErrors {
      field
      message
    }
  }
}
"""

ORDER_TAGS = ["segment-discount", "auto-discount"]


def _amount(node: dict, key: str) -> str:
    return ((node.get(key) or {}).get("shopMoney") or {}).get("amount") or "0.00"


def _draft_order_from_node(node: dict) -> DraftOrder:
    currency = ((node.get("totalPriceSet") or {}).get("shopMoney") or {}).get("currencyCode")
    return DraftOrder(
        id=node["id"],
        name=node.get("name"),
        invoice_url=node.get("invoiceUrl"),
        status=node.get("status"),
        total_price=_amount(node, "totalPriceSet"),
        subtotal_price=_amount(node, "subtotalPriceSet"),
        total_tax=_amount(node, "totalTaxSet"),
        total_discounts=_amount(node, "totalDiscountsSet"),
        currency=currency,
        created_at=node.get("createdAt"),
        updated_at=node.get("updatedAt"),
    )


class OrderSink:
    """
    Submits a full line set for one customer in a single call.

    The call is not idempotent on the sink side; the idempotency key is
    forwarded as a header and recorded on the order so a manual retry can be
    reconciled.
    """

    def __init__(self, client: AdminGraphQLClient):
        self.client = client

    def create_draft_order(
        self,
        customer_id: str,
        lines: list[DraftOrderLine],
        idempotency_key: str,
        note: Optional[str] = None,
    ) -> DraftOrder:
        order_input = {
            "customerId": identifiers.customer_gid(customer_id),
            "lineItems": [line.to_input() for line in lines],
            "tags": ORDER_TAGS,
            "customAttributes": [{"key": "idempotency_key", "value": idempotency_key}],
        }
        if note:
            order_input["note"] = note

        data = self.client.execute(
            DRAFT_ORDER_CREATE,
            {"input": order_input},
            headers={"Idempotency-Key": idempotency_key},
        )

        result = data.get("draftOrderCreate") or {}
        user_errors = result.get("userErrors") or []
        if user_errors:
            details = [{"field": err.get("field"), "message": err.get("message")} for err in user_errors]
            logger.error("Order sink rejected draft order: %s", details)
            raise OrderValidationError("Order validation errors", details=details)

        node = result.get("draftOrder")
        if not node:
            raise UpstreamError("No draft order returned from Order Sink", details=data)

        draft_order = _draft_order_from_node(node)
        logger.info("Draft order %s created (key=%s)", draft_order.id, idempotency_key)
        return draft_order
