"""Paystack webhook endpoint."""
import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.dependencies import get_order_service
from app.services.ordering.status import PaymentStatus
from app.services.payments.webhook import WebhookSignatureError, verify_paystack_signature
from app.services.persistence.orders import OrderPersistenceService

router = APIRouter()
logger = logging.getLogger(__name__)

PAYMENT_EVENTS = {
    "charge.success": PaymentStatus.PAID,
    "charge.failed": PaymentStatus.FAILED,
}


@router.post("/paystack")
async def handle_paystack_webhook(
    request: Request,
    service: OrderPersistenceService = Depends(get_order_service),
):
    """Record payment outcomes reported by Paystack."""
    payload = await request.body()
    signature = request.headers.get("x-paystack-signature")

    if not settings.paystack_secret_key:
        logger.error("[PAYSTACK WEBHOOK] Secret key not configured")
        return JSONResponse(status_code=500, content={"error": "Webhook secret not configured"})

    try:
        verify_paystack_signature(payload, signature, settings.paystack_secret_key)
        event = json.loads(payload)
    except WebhookSignatureError as e:
        logger.warning(f"[PAYSTACK WEBHOOK] Signature verification failed: {str(e)}")
        error = "Missing x-paystack-signature header" if not signature else "Invalid signature"
        return JSONResponse(status_code=400, content={"error": error})
    except ValueError:
        logger.warning("[PAYSTACK WEBHOOK] Body is not valid JSON")
        return JSONResponse(status_code=400, content={"error": "Invalid payload"})

    if not isinstance(event, dict):
        return JSONResponse(status_code=400, content={"error": "Invalid payload"})

    event_type = event.get("event")
    logger.info(f"[PAYSTACK WEBHOOK] Event received - type: {event_type}")

    status = PAYMENT_EVENTS.get(event_type)
    if status is None:
        logger.info(f"[PAYSTACK WEBHOOK] Unhandled event type: {event_type}")
        return {"received": True}

    data = event.get("data")
    reference = data.get("reference") if isinstance(data, dict) else None
    if not isinstance(reference, str) or not reference:
        logger.warning(f"[PAYSTACK WEBHOOK] {event_type} without payment reference")
        return {"received": True}

    try:
        order = await service.update_payment_status(reference, status)
    except Exception as e:
        logger.error(
            f"[PAYSTACK WEBHOOK] Handler failed - reference: {reference}, "
            f"Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
        return JSONResponse(status_code=500, content={"error": "Webhook handler failed"})

    if order is not None:
        logger.info(
            f"[PAYSTACK WEBHOOK] Order {order.order_number} payment marked {status} - "
            f"reference: {reference}"
        )
    return {"received": True}
