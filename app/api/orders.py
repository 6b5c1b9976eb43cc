"""Order submission and lookup API endpoints."""
import logging
from datetime import datetime
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.dependencies import (
    get_invoice_generator,
    get_notification_fanout,
    get_order_service,
    get_payment_reconcilers,
    get_pricing_config_provider,
)
from app.core.errors import OrderNotFoundError, OrderPipelineError, OrderValidationError
from app.db.models import Order
from app.services.notifications.fanout import NotificationFanout
from app.services.notifications.invoice import InvoiceGenerator
from app.services.notifications.payload import build_order_payload
from app.services.ordering.models import (
    OrderConfirmation,
    OrderConfirmedData,
    OrderConfirmedResponse,
    OrderCreatedData,
    OrderCreatedResponse,
    OrderSubmission,
    PreparedOrderData,
    PreparedOrderResponse,
    TrackedExtra,
    TrackedItem,
    TrackedOrder,
    TrackedOrderResponse,
)
from app.services.ordering.order_number import generate_temp_order_number
from app.services.ordering.validator import OrderValidator
from app.services.payments.base import ONLINE_PAYMENT_PROVIDERS
from app.services.payments.reconciler import PaymentReconciler
from app.services.persistence.models import OrderDraft
from app.services.persistence.orders import OrderPersistenceService
from app.services.settings.provider import PricingConfigProvider

router = APIRouter()
logger = logging.getLogger(__name__)


def _client(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _internal_error() -> JSONResponse:
    return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})


def _receipt_url(order: Order) -> Optional[str]:
    for payment in order.payments:
        if isinstance(payment.gateway_response, dict) and payment.gateway_response.get("receiptUrl"):
            return payment.gateway_response["receiptUrl"]
    return None


def _confirmed_data(order: Order) -> OrderConfirmedData:
    return OrderConfirmedData(
        order_id=order.id,
        order_number=order.order_number,
        total=float(order.total),
        status=order.status,
        payment_status=order.payment_status,
    )


@router.post("/api/orders", response_model=OrderCreatedResponse, status_code=201)
async def submit_order(
    submission: OrderSubmission,
    request: Request,
    pricing: PricingConfigProvider = Depends(get_pricing_config_provider),
    service: OrderPersistenceService = Depends(get_order_service),
    fanout: NotificationFanout = Depends(get_notification_fanout),
):
    """Create a pay-on-delivery order."""
    logger.info(
        f"[ORDER SUBMIT] Request received - items: {len(submission.items)}, "
        f"payment: {submission.payment_method}, Client: {_client(request)}"
    )

    try:
        validator = OrderValidator(await pricing.get_config())
        breakdown = validator.price_and_reconcile(submission, "ORDER SUBMIT")
        result = await service.create_order(OrderDraft.from_submission(submission, breakdown))
        order = result.order

        fanout.dispatch(build_order_payload(order))

        logger.info(f"[ORDER SUBMIT] Order {order.order_number} created - total: {order.total}")
        return OrderCreatedResponse(
            message="Order created successfully",
            data=OrderCreatedData(
                order_id=order.id,
                order_number=order.order_number,
                total=float(order.total),
                status=order.status,
            ),
        )
    except OrderPipelineError:
        raise
    except Exception as e:
        logger.error(
            f"[ORDER SUBMIT] Error creating order - Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
        return _internal_error()


@router.post("/api/orders/confirm", response_model=OrderConfirmedResponse, status_code=201)
async def confirm_order(
    confirmation: OrderConfirmation,
    request: Request,
    response: Response,
    pricing: PricingConfigProvider = Depends(get_pricing_config_provider),
    service: OrderPersistenceService = Depends(get_order_service),
    reconcilers: Dict[str, PaymentReconciler] = Depends(get_payment_reconcilers),
    fanout: NotificationFanout = Depends(get_notification_fanout),
):
    """Create an order after the customer completed an online payment."""
    reference = confirmation.payment_intent_id.strip()
    submission = confirmation.order_data
    logger.info(
        f"[ORDER CONFIRM] Request received - payment: {reference}, "
        f"items: {len(submission.items)}, Client: {_client(request)}"
    )

    try:
        method = submission.payment_method.value
        provider = ONLINE_PAYMENT_PROVIDERS.get(method)
        if provider is None:
            logger.warning(
                f"[ORDER CONFIRM] Payment method mismatch - payment: {reference}, method: {method}"
            )
            raise OrderValidationError(
                "Payment method mismatch",
                [
                    f"orderData.paymentMethod: {method} orders cannot be confirmed "
                    "with an online payment"
                ],
            )

        validator = OrderValidator(await pricing.get_config())
        breakdown = validator.price_and_reconcile(submission, "ORDER CONFIRM")

        existing = await service.get_order_by_payment_reference(reference)
        if existing:
            logger.info(
                f"[ORDER CONFIRM] Payment {reference} already confirmed as {existing.order_number}"
            )
            response.status_code = 200
            return OrderConfirmedResponse(
                message="Order already confirmed", data=_confirmed_data(existing)
            )

        payment = await reconcilers[provider].reconcile(
            reference, breakdown.total, settings.default_currency
        )
        if payment.definitely_unpaid:
            logger.warning(
                f"[ORDER CONFIRM] Payment {reference} not completed - status: {payment.status}"
            )
            raise OrderValidationError(
                "Payment not completed",
                [f"paymentIntentId: Payment status is {payment.status}"],
            )

        # Settlement time reported by the authority, request time when unknown
        draft = OrderDraft.from_submission(submission, breakdown).with_payment(
            payment, payment.paid_at or datetime.utcnow()
        )
        result = await service.create_order(draft)
        order = result.order

        if not result.created:
            response.status_code = 200
            return OrderConfirmedResponse(
                message="Order already confirmed", data=_confirmed_data(order)
            )

        fanout.dispatch(build_order_payload(order, receipt_url=payment.receipt_url))

        logger.info(
            f"[ORDER CONFIRM] Order {order.order_number} confirmed - total: {order.total}, "
            f"paid: {payment.amount} {payment.currency}"
        )
        return OrderConfirmedResponse(
            message="Order confirmed successfully", data=_confirmed_data(order)
        )
    except OrderPipelineError:
        raise
    except Exception as e:
        logger.error(
            f"[ORDER CONFIRM] Error confirming order - payment: {reference}, "
            f"Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
        return _internal_error()


@router.post("/api/orders/prepare", response_model=PreparedOrderResponse)
async def prepare_order(
    submission: OrderSubmission,
    pricing: PricingConfigProvider = Depends(get_pricing_config_provider),
):
    """Price a cart before payment. Nothing is written."""
    validator = OrderValidator(await pricing.get_config())
    validator.require_consistent_client_totals(submission)
    breakdown = validator.price_and_reconcile(submission, "ORDER PREPARE")

    return PreparedOrderResponse(
        message="Order prepared",
        data=PreparedOrderData(
            temp_order_number=generate_temp_order_number(),
            subtotal=float(breakdown.subtotal),
            delivery_fee=float(breakdown.delivery_fee),
            vat_amount=float(breakdown.vat_amount),
            total=float(breakdown.total),
        ),
    )


@router.get("/api/orders/track/{order_number}", response_model=TrackedOrderResponse)
async def track_order(
    order_number: str,
    service: OrderPersistenceService = Depends(get_order_service),
):
    """Public order status lookup."""
    order = await service.get_order_by_number(order_number)
    if order is None:
        raise OrderNotFoundError(f"Order {order_number} not found")

    items = []
    for item in order.items:
        extras = [
            TrackedExtra(name=extra.name, price=float(extra.price), quantity=extra.quantity)
            for extra in item.extras
        ]
        extras_per_unit = sum(extra.price * extra.quantity for extra in item.extras)
        items.append(
            TrackedItem(
                name=item.item_name,
                quantity=item.quantity,
                unit_price=float(item.price),
                variant=item.variant_name,
                extras=extras,
                total_price=float((item.price + extras_per_unit) * item.quantity),
            )
        )

    return TrackedOrderResponse(
        data=TrackedOrder(
            order_number=order.order_number,
            status=order.status,
            customer_name=order.customer_name,
            delivery_method=order.delivery_method,
            payment_method=order.payment_method,
            payment_status=order.payment_status,
            subtotal=float(order.subtotal),
            delivery_fee=float(order.delivery_fee),
            vat_rate=float(order.vat_rate or 0),
            vat_amount=float(order.vat_amount or 0),
            total=float(order.total),
            created_at=order.created_at.isoformat(),
            updated_at=order.updated_at.isoformat(),
            items=items,
        )
    )


@router.get("/api/orders/{order_id}/invoice")
async def download_invoice(
    order_id: str,
    service: OrderPersistenceService = Depends(get_order_service),
    generator: InvoiceGenerator = Depends(get_invoice_generator),
):
    """Download the PDF invoice for an order."""
    order = await service.get_order_by_id(order_id)
    if order is None:
        raise OrderNotFoundError(f"Order {order_id} not found")

    pdf = await generator.generate(build_order_payload(order, receipt_url=_receipt_url(order)))
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="invoice-{order.order_number}.pdf"'
        },
    )
