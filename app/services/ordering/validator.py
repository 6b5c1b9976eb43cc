"""Order validation service."""
import logging
from typing import List

from app.core.errors import OrderValidationError
from app.services.ordering.models import OrderSubmission
from app.services.ordering.pricing import (
    PriceBreakdown,
    PricingLine,
    quantize_money,
    resolve_pricing,
    totals_reconcile,
)
from app.services.settings.provider import PricingConfig

logger = logging.getLogger(__name__)


class OrderValidator:
    """Service for validating submitted orders against server pricing."""

    def __init__(self, config: PricingConfig):
        self.config = config

    def price(self, submission: OrderSubmission) -> PriceBreakdown:
        """Price a submission from its lines, ignoring client totals."""
        lines = [PricingLine.from_request(item) for item in submission.items]
        return resolve_pricing(lines, submission.delivery_method, self.config)

    def find_discrepancies(
        self, submission: OrderSubmission, breakdown: PriceBreakdown
    ) -> List[str]:
        """
        List client-supplied figures that differ from the server's.

        Returns:
            Messages in "field: client X, server Y" form; empty when they agree.
        """
        client_figures = {
            "subtotal": submission.subtotal,
            "deliveryFee": submission.delivery_fee,
            "vatAmount": submission.vat_amount,
            "total": submission.total,
        }
        server_figures = {
            "subtotal": breakdown.subtotal,
            "deliveryFee": breakdown.delivery_fee,
            "vatAmount": breakdown.vat_amount,
            "total": breakdown.total,
        }

        discrepancies = []
        for field, client_value in client_figures.items():
            if client_value is None:
                continue
            if quantize_money(client_value) != server_figures[field]:
                discrepancies.append(
                    f"{field}: client {quantize_money(client_value)}, server {server_figures[field]}"
                )
        return discrepancies

    def price_and_reconcile(self, submission: OrderSubmission, context: str) -> PriceBreakdown:
        """Price a submission; log (but tolerate) divergence from client totals."""
        breakdown = self.price(submission)
        discrepancies = self.find_discrepancies(submission, breakdown)
        if discrepancies:
            logger.warning(
                f"[{context}] Client totals differ from server pricing, using server values - "
                f"{'; '.join(discrepancies)}"
            )
        return breakdown

    def require_consistent_client_totals(self, submission: OrderSubmission) -> None:
        """Reject a submission whose own figures do not add up."""
        vat_amount = submission.vat_amount or 0
        if not totals_reconcile(
            submission.subtotal, submission.delivery_fee, quantize_money(vat_amount), submission.total
        ):
            raise OrderValidationError(
                "Invalid totals",
                ["total: subtotal + deliveryFee + vatAmount must equal total"],
            )
