"""FastAPI dependencies."""
from typing import Dict, Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.database import get_db
from app.services.notifications.email import SmtpEmailSender
from app.services.notifications.fanout import NotificationFanout
from app.services.notifications.invoice import InvoiceGenerator, PdfInvoiceGenerator
from app.services.notifications.sms import TwilioSmsSender
from app.services.payments.base import ChargeAuthority, TransactionAuthority
from app.services.payments.paystack_client import PaystackPaymentAuthority
from app.services.payments.reconciler import (
    PaymentReconciler,
    PaystackReconciler,
    StripeReconciler,
)
from app.services.payments.stripe_client import StripePaymentAuthority
from app.services.persistence.orders import OrderPersistenceService
from app.services.settings.provider import (
    PricingConfig,
    PricingConfigProvider,
    SiteSettingPricingConfigProvider,
)

# Shared by all requests; in-flight tasks are drained at shutdown
_fanout: Optional[NotificationFanout] = None


def get_pricing_config_provider(db: AsyncSession = Depends(get_db)) -> PricingConfigProvider:
    """Get pricing configuration provider backed by site settings."""
    return SiteSettingPricingConfigProvider(db, defaults=PricingConfig.from_settings(settings))


def get_order_service(db: AsyncSession = Depends(get_db)) -> OrderPersistenceService:
    """Get order persistence service instance."""
    return OrderPersistenceService(
        db,
        max_attempts=settings.db_retry_attempts,
        retry_delay=settings.db_retry_delay_seconds,
    )


def get_payment_authority() -> ChargeAuthority:
    """Get the Stripe payment authority client."""
    return StripePaymentAuthority(
        secret_key=settings.stripe_secret_key,
        api_base=settings.stripe_api_base,
        timeout=settings.payment_timeout_seconds,
    )


def get_paystack_authority() -> TransactionAuthority:
    """Get the Paystack payment authority client."""
    return PaystackPaymentAuthority(
        secret_key=settings.paystack_secret_key,
        api_base=settings.paystack_api_base,
        timeout=settings.payment_timeout_seconds,
    )


def get_payment_reconcilers(
    stripe: ChargeAuthority = Depends(get_payment_authority),
    paystack: TransactionAuthority = Depends(get_paystack_authority),
) -> Dict[str, PaymentReconciler]:
    """Get payment reconcilers keyed by provider name."""
    timeout = settings.payment_timeout_seconds
    return {
        "stripe": StripeReconciler(stripe, timeout=timeout),
        "paystack": PaystackReconciler(paystack, timeout=timeout),
    }


def get_invoice_generator() -> InvoiceGenerator:
    """Get invoice generator instance."""
    return PdfInvoiceGenerator(
        business_name=settings.business_name,
        business_address=settings.business_address,
        business_phone=settings.business_phone,
        business_email=settings.business_email,
    )


def build_notification_fanout() -> NotificationFanout:
    """Build the notification fan-out from settings."""
    return NotificationFanout(
        email_sender=SmtpEmailSender(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_password,
            from_address=settings.email_from,
            admin_email=settings.admin_email,
            business_name=settings.business_name,
        ),
        sms_sender=TwilioSmsSender(
            account_sid=settings.twilio_account_sid,
            auth_token=settings.twilio_auth_token,
            from_number=settings.twilio_phone_number,
            admin_phone=settings.admin_phone,
            api_base=settings.twilio_api_base,
        ),
        invoice_generator=get_invoice_generator(),
    )


def get_notification_fanout() -> NotificationFanout:
    """Get the process-wide notification fan-out."""
    global _fanout
    if _fanout is None:
        _fanout = build_notification_fanout()
    return _fanout
