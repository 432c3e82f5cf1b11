"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    full_name: str
    phone: str
    street: str
    city: str
    state: str | None = None
    postal_code: str | None = None
    country: str


class OrderLineSchema(BaseModel):
    product_id: str
    variant_id: str | None = None
    name: str
    sku: str | None = None
    unit_price: float
    quantity: int
    options: list[dict] = []
    image: str | None = None


class OrderRequestSchema(BaseModel):
    reason: str
    attachment_urls: list[str] = []
    requested_at: datetime | None = None


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    variant_id: str | None = None
    quantity: int = Field(ge=1, default=1)


class ApplyCouponToCartRequest(BaseModel):
    coupon_code: str = Field(min_length=1, max_length=50)


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    selected_item_ids: list[str] = Field(min_length=1)
    payment_method: Literal["COD", "BANK_TRANSFER", "PAYPAL"]
    shipping_method: str = "Standard"
    shipping_address: AddressSchema
    guest_email: str | None = None
    notes: str | None = Field(default=None, max_length=1000)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "selected_item_ids": ["item-001"],
                    "payment_method": "COD",
                    "shipping_method": "Standard",
                    "shipping_address": {
                        "full_name": "Jane Doe",
                        "phone": "+1-555-0100",
                        "street": "123 Main St",
                        "city": "Springfield",
                        "state": "IL",
                        "postal_code": "62701",
                        "country": "US",
                    },
                    "guest_email": None,
                    "notes": "Leave at the front desk",
                }
            ]
        }
    }


class UpdateStatusRequest(BaseModel):
    status: Literal["Processing", "Shipped", "Cancelled", "Refunded"]


class BuyerRequestBody(BaseModel):
    reason: str = Field(min_length=1, max_length=1000)
    attachment_urls: list[str] = []


class RejectRequestBody(BaseModel):
    reason: str = Field(min_length=1, max_length=1000)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class CartItemIdResponse(BaseModel):
    item_id: str


class CartItemSchema(BaseModel):
    item_id: str
    product_id: str
    variant_id: str | None = None
    quantity: int


class CartResponse(BaseModel):
    cart_id: str
    coupon_code: str | None = None
    items: list[CartItemSchema]


class OrderResponse(BaseModel):
    order_id: str
    status: str
    previous_status: str | None = None
    user_id: str | None = None
    guest_email: str | None = None
    lines: list[OrderLineSchema]
    items_price: float
    discount_amount: float
    shipping_price: float
    tax_price: float
    total_price: float
    coupon_code: str | None = None
    payment_method: str
    shipping_method: str | None = None
    shipping_address: AddressSchema | None = None
    notes: str | None = None
    admin_notes: str | None = None
    is_paid: bool
    paid_at: datetime | None = None
    is_delivered: bool
    delivered_at: datetime | None = None
    is_stock_restored: bool
    cancellation_request: OrderRequestSchema | None = None
    refund_request: OrderRequestSchema | None = None
    guest_tracking_token: str | None = None
    created_at: datetime | None = None


class RestockResponse(BaseModel):
    order_id: str
    is_stock_restored: bool
    units_restored: int


class OrderSummaryLineSchema(BaseModel):
    name: str
    image: str | None = None


class OrderSummarySchema(BaseModel):
    order_id: str
    status: str
    total_price: float
    created_at: datetime | None = None
    lines: list[OrderSummaryLineSchema]


class OrderPage(BaseModel):
    current_page: int
    total_pages: int
    total_orders: int
    limit: int


class MyOrdersResponse(OrderPage):
    orders: list[OrderSummarySchema]


class OrderListResponse(OrderPage):
    orders: list[OrderResponse]
