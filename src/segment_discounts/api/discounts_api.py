"""
Discounts API - offer resolution and discounted order construction.
"""
from typing import Optional, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from ..engine import CartLine, SegmentDiscountEngine
from ..engine.errors import InputError
from .state import get_engine

router = APIRouter(prefix="/api", tags=["discounts"])

IdValue = Union[str, int]


class CustomerIn(BaseModel):
    """Customer as sent by the storefront."""
    id: Optional[IdValue] = None
    tags: Optional[Union[list[str], str]] = None
    email: Optional[str] = None
    name: Optional[str] = None

    def tag_list(self) -> list[str]:
        # Storefront templates sometimes send tags as one comma-separated string
        if isinstance(self.tags, str):
            return [t.strip() for t in self.tags.split(',') if t.strip()]
        return list(self.tags or [])


class OfferRequest(BaseModel):
    customer: Optional[CustomerIn] = None
    shop: Optional[str] = None
    debug: bool = False


class CartItemIn(BaseModel):
    """Cart line in the app's own format (prices in currency units)."""
    model_config = ConfigDict(populate_by_name=True)

    product_id: IdValue = Field(alias="productId")
    variant_id: IdValue = Field(alias="variantId")
    price: float
    quantity: int = 1
    title: str = ""


class StorefrontCartItem(BaseModel):
    """Cart line as found in a storefront cart object (prices in cents)."""
    product_id: IdValue
    variant_id: IdValue
    price: float = 0
    quantity: int = 1
    title: str = ""
    original_price: Optional[float] = None
    final_price: Optional[float] = None


class StorefrontCart(BaseModel):
    items: list[StorefrontCartItem]


class OrderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    shop: Optional[str] = None
    customer_id: Optional[IdValue] = Field(default=None, alias="customerId")
    cart_items: Optional[Union[list[CartItemIn], StorefrontCart]] = Field(default=None, alias="cartItems")
    idempotency_key: Optional[str] = Field(default=None, alias="idempotencyKey")
    debug: bool = False

    def cart_lines(self) -> list[CartLine]:
        if isinstance(self.cart_items, StorefrontCart):
            return [
                CartLine(
                    product_id=str(item.product_id),
                    variant_id=str(item.variant_id),
                    quantity=item.quantity,
                    unit_price=item.price / 100,
                    title=item.title,
                )
                for item in self.cart_items.items
            ]
        return [
            CartLine(
                product_id=str(item.product_id),
                variant_id=str(item.variant_id),
                quantity=item.quantity,
                unit_price=item.price,
                title=item.title,
            )
            for item in self.cart_items or []
        ]


def _debug_fields(result) -> dict:
    return {"trace": result.get_trace_text(), "warnings": result.warnings}


@router.post("/segment-offer")
def segment_offer(req: OfferRequest, engine: SegmentDiscountEngine = Depends(get_engine)):
    """Resolve the read-only discount offer for a storefront customer."""
    customer = req.customer
    if customer is None or customer.id in (None, "") or customer.tags is None:
        raise InputError("Customer object must contain id and tags")

    offer = engine.resolve_offer(str(customer.id), customer.tag_list(), shop=req.shop)
    payload = {
        "success": True,
        "offer": offer.to_dict(),
        "customer": {
            "id": customer.id,
            "email": customer.email,
            "name": customer.name,
            "tags": customer.tags,
        },
    }
    if req.debug:
        payload.update(_debug_fields(offer))
    return payload


@router.post("/check-segment-discount")
def check_segment_discount(req: OrderRequest, engine: SegmentDiscountEngine = Depends(get_engine)):
    """Discount a cart for a customer and create the draft order."""
    if not req.shop or req.customer_id in (None, "") or req.cart_items is None:
        raise InputError(
            "Missing required fields: shop, customerId, or cartItems",
            details={
                "hasShop": bool(req.shop),
                "hasCustomerId": req.customer_id not in (None, ""),
                "hasCartItems": req.cart_items is not None,
            },
        )

    result = engine.create_order(
        shop=req.shop,
        customer_id=str(req.customer_id),
        lines=req.cart_lines(),
        idempotency_key=req.idempotency_key,
    )
    payload = result.to_dict()
    if req.debug:
        payload.update(_debug_fields(result))
    return payload
