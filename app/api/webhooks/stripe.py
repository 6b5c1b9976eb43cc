"""Stripe webhook endpoint."""
import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.dependencies import get_order_service
from app.services.ordering.status import PaymentStatus
from app.services.payments.webhook import WebhookSignatureError, verify_stripe_signature
from app.services.persistence.orders import OrderPersistenceService

router = APIRouter()
logger = logging.getLogger(__name__)

PAYMENT_EVENTS = {
    "payment_intent.succeeded": PaymentStatus.PAID,
    "payment_intent.payment_failed": PaymentStatus.FAILED,
    "checkout.session.completed": PaymentStatus.PAID,
}


def _payment_reference(event_type: str, obj: dict):
    if event_type == "checkout.session.completed":
        return obj.get("payment_intent")
    return obj.get("id")


@router.post("/stripe")
async def handle_stripe_webhook(
    request: Request,
    service: OrderPersistenceService = Depends(get_order_service),
):
    """Record payment outcomes reported by Stripe. Notifications are not re-sent."""
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    if not settings.stripe_webhook_secret:
        logger.error("[STRIPE WEBHOOK] Webhook secret not configured")
        return JSONResponse(status_code=500, content={"error": "Webhook secret not configured"})

    try:
        verify_stripe_signature(payload, signature, settings.stripe_webhook_secret)
        event = json.loads(payload)
    except WebhookSignatureError as e:
        logger.warning(f"[STRIPE WEBHOOK] Signature verification failed: {str(e)}")
        error = "Missing stripe-signature header" if not signature else "Invalid signature"
        return JSONResponse(status_code=400, content={"error": error})
    except ValueError:
        logger.warning("[STRIPE WEBHOOK] Body is not valid JSON")
        return JSONResponse(status_code=400, content={"error": "Invalid payload"})

    if not isinstance(event, dict):
        return JSONResponse(status_code=400, content={"error": "Invalid payload"})

    event_type = event.get("type")
    logger.info(f"[STRIPE WEBHOOK] Event received - type: {event_type}, id: {event.get('id')}")

    status = PAYMENT_EVENTS.get(event_type)
    if status is None:
        logger.info(f"[STRIPE WEBHOOK] Unhandled event type: {event_type}")
        return {"received": True}

    data = event.get("data")
    obj = data.get("object") if isinstance(data, dict) else None
    if not isinstance(obj, dict):
        obj = {}
    reference = _payment_reference(event_type, obj)
    if not reference:
        logger.warning(f"[STRIPE WEBHOOK] {event_type} without payment reference")
        return {"received": True}

    try:
        order = await service.update_payment_status(reference, status)
    except Exception as e:
        logger.error(
            f"[STRIPE WEBHOOK] Handler failed - reference: {reference}, "
            f"Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
        return JSONResponse(status_code=500, content={"error": "Webhook handler failed"})

    if order is not None:
        logger.info(
            f"[STRIPE WEBHOOK] Order {order.order_number} payment marked {status} - "
            f"reference: {reference}"
        )
    return {"received": True}
