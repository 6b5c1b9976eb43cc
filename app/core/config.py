"""Application configuration."""
from decimal import Decimal
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    db_retry_attempts: int = 3
    db_retry_delay_seconds: float = 1.0

    # Orders
    order_number_prefix: str = "TB"
    default_currency: str = "ngn"

    # Pricing defaults (overridden by site settings rows when present)
    standard_delivery_fee: Decimal = Decimal("3.00")
    express_delivery_fee: Decimal = Decimal("5.00")
    vat_enabled: bool = False
    vat_rate: Decimal = Decimal("0")

    # Stripe
    stripe_secret_key: Optional[str] = None
    stripe_api_base: str = "https://api.stripe.com/v1"
    stripe_webhook_secret: Optional[str] = None
    payment_timeout_seconds: float = 10.0

    # Paystack
    paystack_secret_key: Optional[str] = None
    paystack_api_base: str = "https://api.paystack.co"

    # Email (SMTP)
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    email_from: str = "noreply@southplace.ng"
    admin_email: Optional[str] = None

    # Twilio
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_phone_number: Optional[str] = None
    twilio_api_base: str = "https://api.twilio.com/2010-04-01"
    admin_phone: Optional[str] = None

    # Business details printed on emails and invoices
    business_name: str = "South Place"
    business_address: str = "Lagos, Nigeria"
    business_phone: str = "+234 800 000 0000"
    business_email: str = "orders@southplace.ng"

    # Notifications
    notification_drain_timeout_seconds: float = 10.0

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


settings = Settings()
