"""Order endpoints for the checkout flow.

Provides REST endpoints for:
- Creating a Razorpay order for a cart (public, called by checkout)
- Fetching a stored order by internal order ID
"""

from fastapi import APIRouter, Depends, Query
from starlette.status import HTTP_201_CREATED

from storefront.models import ErrorCode, ErrorResponse, OrderCreate, PaymentError
from storefront.services.order_service import OrderService
from storefront_api.dependencies import get_order_service
from storefront_api.models import CreateOrderResponse, OrderResponse

router = APIRouter(tags=["orders"])


@router.post(
    "/razorpay/create-order",
    summary="Create payment order",
    description="""
Validate a checkout request, create a Razorpay order and store the local order.

**Validation:**
- Items, amount and customer name/email/phone are required
- Amount must be between ₹1 and ₹10,00,000
- Phone must be a 10-digit Indian mobile number
- Amount must match the items total within ₹1

The response carries the gateway order id and public key id for the
checkout widget.
""",
    response_model=CreateOrderResponse,
    status_code=HTTP_201_CREATED,
    responses={
        400: {"description": "Validation failed", "model": ErrorResponse},
        500: {"description": "Gateway not configured or unavailable", "model": ErrorResponse},
    },
)
async def create_order(
    body: OrderCreate,
    order_service: OrderService = Depends(get_order_service),
) -> CreateOrderResponse:
    """Create a gateway order for the submitted cart."""
    created = order_service.create_order(body)
    return CreateOrderResponse.model_validate(created.model_dump())


@router.get(
    "/razorpay/create-order",
    summary="Get order",
    description="Fetch a stored order by its internal order ID (ORD-...).",
    response_model=OrderResponse,
    responses={
        400: {"description": "orderId missing", "model": ErrorResponse},
        404: {"description": "Order not found", "model": ErrorResponse},
    },
)
async def get_order(
    order_id: str | None = Query(default=None, alias="orderId"),
    order_service: OrderService = Depends(get_order_service),
) -> OrderResponse:
    """Fetch an order by internal ID."""
    if not order_id:
        raise PaymentError(ErrorCode.INVALID_REQUEST, "Order ID is required")
    return OrderResponse(order=order_service.get_order(order_id))
