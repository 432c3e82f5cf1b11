"""FastAPI routes for the Ordering domain — carts, checkout and order workflow.

Session issuance lives elsewhere; the caller's identity arrives in headers
(``X-User-Id``, ``X-Guest-Id``, ``X-User-Role``) set by the gateway in front
of this service.
"""

import json
import math
from dataclasses import dataclass
from datetime import UTC, date, datetime, time
from typing import Literal

from fastapi import APIRouter, Depends, Header, Query
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    AddToCartRequest,
    ApplyCouponToCartRequest,
    BuyerRequestBody,
    CartItemIdResponse,
    CartItemSchema,
    CartResponse,
    MyOrdersResponse,
    OrderListResponse,
    OrderResponse,
    OrderSummarySchema,
    PlaceOrderRequest,
    RejectRequestBody,
    RestockResponse,
    StatusResponse,
    UpdateStatusRequest,
)
from ordering.cart.cart import ShoppingCart
from ordering.cart.items import AddToCart, ApplyCouponToCart
from ordering.cart.store import CartStore
from ordering.checkout.placement import PlaceOrder
from ordering.checkout.service import execute
from ordering.errors import NotAuthorized
from ordering.order.lifecycle import (
    ApproveCancellation,
    ApproveRefund,
    ConfirmDelivery,
    RejectCancellation,
    RejectRefund,
    RequestCancellation,
    RequestRefund,
    UpdateOrderStatus,
)
from ordering.order.order import Order
from ordering.order.restock import RestockOrder
from ordering.order.status import OrderStatus
from ordering.order.tracking import find_guest_order

OPERATOR_ROLE = "admin"


# ---------------------------------------------------------------------------
# Caller identity
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Caller:
    user_id: str | None = None
    guest_id: str | None = None
    role: str | None = None

    @property
    def is_operator(self) -> bool:
        return self.role == OPERATOR_ROLE


def current_caller(
    x_user_id: str | None = Header(default=None),
    x_guest_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> Caller:
    return Caller(user_id=x_user_id, guest_id=x_guest_id, role=x_user_role)


def signed_in_buyer(caller: Caller = Depends(current_caller)) -> Caller:
    if not caller.user_id:
        raise NotAuthorized("Sign in to manage your orders")
    return caller


def cart_owner(caller: Caller = Depends(current_caller)) -> Caller:
    if not (caller.user_id or caller.guest_id):
        raise NotAuthorized("A user or guest session is required")
    return caller


def operator(caller: Caller = Depends(current_caller)) -> Caller:
    if not caller.is_operator:
        raise NotAuthorized("Operator role required")
    return caller


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------
def _request_dict(request):
    if request is None:
        return None
    return {
        "reason": request.reason,
        "attachment_urls": json.loads(request.attachment_urls) if request.attachment_urls else [],
        "requested_at": request.requested_at,
    }


def _order_response(order: Order, include_token: bool = False) -> OrderResponse:
    address = order.shipping_address
    return OrderResponse(
        order_id=str(order.id),
        status=order.status,
        previous_status=order.previous_status,
        user_id=str(order.user_id) if order.user_id else None,
        guest_email=order.guest_email,
        lines=[
            {
                "product_id": str(line.product_id),
                "variant_id": str(line.variant_id) if line.variant_id else None,
                "name": line.name,
                "sku": line.sku,
                "unit_price": line.unit_price,
                "quantity": line.quantity,
                "options": json.loads(line.options) if line.options else [],
                "image": line.image,
            }
            for line in order.lines
        ],
        items_price=order.pricing.items_price,
        discount_amount=order.pricing.discount_amount,
        shipping_price=order.pricing.shipping_price,
        tax_price=order.pricing.tax_price,
        total_price=order.pricing.total_price,
        coupon_code=order.coupon_code,
        payment_method=order.payment_method,
        shipping_method=order.shipping_method,
        shipping_address=(
            {
                "full_name": address.full_name,
                "phone": address.phone,
                "street": address.street,
                "city": address.city,
                "state": address.state,
                "postal_code": address.postal_code,
                "country": address.country,
            }
            if address
            else None
        ),
        notes=order.notes,
        admin_notes=order.admin_notes,
        is_paid=bool(order.is_paid),
        paid_at=order.paid_at,
        is_delivered=bool(order.is_delivered),
        delivered_at=order.delivered_at,
        is_stock_restored=bool(order.is_stock_restored),
        cancellation_request=_request_dict(order.cancellation_request),
        refund_request=_request_dict(order.refund_request),
        guest_tracking_token=order.guest_tracking_token if include_token else None,
        created_at=order.created_at,
    )


def _load_order(order_id: str) -> Order:
    return current_domain.repository_for(Order).get(order_id)


def _summary(order: Order) -> OrderSummarySchema:
    return OrderSummarySchema(
        order_id=str(order.id),
        status=order.status,
        total_price=order.pricing.total_price,
        created_at=order.created_at,
        lines=[{"name": line.name, "image": line.image} for line in order.lines],
    )


def _total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit)


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse)
async def get_cart(caller: Caller = Depends(cart_owner)) -> CartResponse:
    cart = CartStore(current_domain.repository_for(ShoppingCart)).cart_for(
        user_id=caller.user_id, guest_id=caller.guest_id
    )
    return CartResponse(
        cart_id=str(cart.id),
        coupon_code=cart.coupon_code,
        items=[
            CartItemSchema(
                item_id=str(item.id),
                product_id=str(item.product_id),
                variant_id=str(item.variant_id) if item.variant_id else None,
                quantity=item.quantity,
            )
            for item in cart.items
        ],
    )


@cart_router.post("/items", status_code=201, response_model=CartItemIdResponse)
async def add_cart_item(body: AddToCartRequest, caller: Caller = Depends(cart_owner)) -> CartItemIdResponse:
    command = AddToCart(
        user_id=caller.user_id,
        guest_id=None if caller.user_id else caller.guest_id,
        product_id=body.product_id,
        variant_id=body.variant_id,
        quantity=body.quantity,
    )
    item_id = execute(command)
    return CartItemIdResponse(item_id=item_id)


@cart_router.post("/coupon", response_model=StatusResponse)
async def apply_cart_coupon(body: ApplyCouponToCartRequest, caller: Caller = Depends(cart_owner)) -> StatusResponse:
    command = ApplyCouponToCart(
        user_id=caller.user_id,
        guest_id=None if caller.user_id else caller.guest_id,
        coupon_code=body.coupon_code,
    )
    execute(command)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
async def place_order(body: PlaceOrderRequest, caller: Caller = Depends(cart_owner)) -> OrderResponse:
    """Check out the selected cart lines.

    Signed-in buyers are identified by ``X-User-Id``; guests by ``X-Guest-Id``
    plus ``guest_email`` in the body.
    """
    command = PlaceOrder(
        user_id=caller.user_id,
        guest_id=None if caller.user_id else caller.guest_id,
        guest_email=None if caller.user_id else body.guest_email,
        selected_item_ids=json.dumps(body.selected_item_ids),
        payment_method=body.payment_method,
        shipping_method=body.shipping_method,
        shipping_address=json.dumps(body.shipping_address.model_dump()),
        notes=body.notes,
    )
    order_id = execute(command)
    order = _load_order(order_id)
    return _order_response(order, include_token=order.is_guest_order)


@order_router.get("", response_model=OrderListResponse)
async def list_orders(
    status: OrderStatus | None = None,
    user_id: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    sort_by: Literal["created_at", "total_price", "status"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    _: Caller = Depends(operator),
) -> OrderListResponse:
    """Every order, filtered for the operator's review queue.

    Date bounds are whole days in UTC: ``start_date`` from midnight,
    ``end_date`` through the end of the day.
    """
    orders, total = current_domain.repository_for(Order).search(
        status=status.value if status else None,
        user_id=user_id,
        created_from=datetime.combine(start_date, time.min, tzinfo=UTC) if start_date else None,
        created_to=datetime.combine(end_date, time.max, tzinfo=UTC) if end_date else None,
        sort_by=sort_by,
        descending=sort_order == "desc",
        page=page,
        limit=limit,
    )
    return OrderListResponse(
        current_page=page,
        total_pages=_total_pages(total, limit),
        total_orders=total,
        limit=limit,
        orders=[_order_response(order) for order in orders],
    )


@order_router.get("/my", response_model=MyOrdersResponse)
async def list_my_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    caller: Caller = Depends(signed_in_buyer),
) -> MyOrdersResponse:
    orders, total = current_domain.repository_for(Order).orders_for_user(caller.user_id, page=page, limit=limit)
    return MyOrdersResponse(
        current_page=page,
        total_pages=_total_pages(total, limit),
        total_orders=total,
        limit=limit,
        orders=[_summary(order) for order in orders],
    )


@order_router.get("/guest-track/{order_id}/{token}", response_model=OrderResponse)
async def track_guest_order(order_id: str, token: str) -> OrderResponse:
    return _order_response(find_guest_order(order_id, token))


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, caller: Caller = Depends(current_caller)) -> OrderResponse:
    order = _load_order(order_id)
    if not (caller.is_operator or order.is_owned_by(caller.user_id)):
        raise NotAuthorized(f"Order {order_id} does not belong to the caller")
    return _order_response(order)


# --- Buyer actions ---


@order_router.put("/{order_id}/confirm-delivery", response_model=OrderResponse)
async def confirm_delivery(order_id: str, caller: Caller = Depends(signed_in_buyer)) -> OrderResponse:
    execute(ConfirmDelivery(order_id=order_id, user_id=caller.user_id))
    return _order_response(_load_order(order_id))


@order_router.put("/{order_id}/request-cancellation", response_model=OrderResponse)
async def request_cancellation(
    order_id: str, body: BuyerRequestBody, caller: Caller = Depends(signed_in_buyer)
) -> OrderResponse:
    command = RequestCancellation(
        order_id=order_id,
        user_id=caller.user_id,
        reason=body.reason,
        attachment_urls=json.dumps(body.attachment_urls),
    )
    execute(command)
    return _order_response(_load_order(order_id))


@order_router.put("/{order_id}/request-refund", response_model=OrderResponse)
async def request_refund(order_id: str, body: BuyerRequestBody, caller: Caller = Depends(signed_in_buyer)) -> OrderResponse:
    command = RequestRefund(
        order_id=order_id,
        user_id=caller.user_id,
        reason=body.reason,
        attachment_urls=json.dumps(body.attachment_urls),
    )
    execute(command)
    return _order_response(_load_order(order_id))


# --- Operator actions ---


@order_router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str, body: UpdateStatusRequest, _: Caller = Depends(operator)
) -> OrderResponse:
    execute(UpdateOrderStatus(order_id=order_id, status=body.status))
    return _order_response(_load_order(order_id))


@order_router.put("/{order_id}/approve-cancellation", response_model=OrderResponse)
async def approve_cancellation(order_id: str, _: Caller = Depends(operator)) -> OrderResponse:
    execute(ApproveCancellation(order_id=order_id))
    return _order_response(_load_order(order_id))


@order_router.put("/{order_id}/reject-cancellation", response_model=OrderResponse)
async def reject_cancellation(order_id: str, body: RejectRequestBody, _: Caller = Depends(operator)) -> OrderResponse:
    execute(RejectCancellation(order_id=order_id, reason=body.reason))
    return _order_response(_load_order(order_id))


@order_router.put("/{order_id}/approve-refund", response_model=OrderResponse)
async def approve_refund(order_id: str, _: Caller = Depends(operator)) -> OrderResponse:
    execute(ApproveRefund(order_id=order_id))
    return _order_response(_load_order(order_id))


@order_router.put("/{order_id}/reject-refund", response_model=OrderResponse)
async def reject_refund(order_id: str, body: RejectRequestBody, _: Caller = Depends(operator)) -> OrderResponse:
    execute(RejectRefund(order_id=order_id, reason=body.reason))
    return _order_response(_load_order(order_id))


@order_router.post("/{order_id}/restock", response_model=RestockResponse)
async def restock_order(order_id: str, _: Caller = Depends(operator)) -> RestockResponse:
    execute(RestockOrder(order_id=order_id))
    order = _load_order(order_id)
    return RestockResponse(
        order_id=str(order.id),
        is_stock_restored=bool(order.is_stock_restored),
        units_restored=order.total_units,
    )
