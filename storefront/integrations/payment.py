"""
storefront/integrations/payment.py - Card payment boundary.

Checkout hands the frozen order total to a PaymentGateway and only looks at
the PaymentResult. The card processor integration is currently disabled,
so the gateway shipped here simulates captures: any positive amount is
approved unless the configured decline token is used.
"""
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from storefront.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentResult:
    approved: bool
    reference: str | None = None
    message: str | None = None


class PaymentGateway(Protocol):
    def capture(
        self, order_id: uuid.UUID, amount: Decimal, payment_token: str
    ) -> PaymentResult: ...


class SimulatedPaymentGateway:
    """
    Stand-in for the card processor while live charging is switched off.

    - amount <= 0 => declined
    - payment_token == PAYMENT_DECLINE_TOKEN => declined
    - anything else => approved with a SIM-<uuid> reference
    """

    def __init__(self, decline_token: str | None = None):
        self.decline_token = decline_token or settings.PAYMENT_DECLINE_TOKEN

    def capture(
        self, order_id: uuid.UUID, amount: Decimal, payment_token: str
    ) -> PaymentResult:
        if amount <= 0:
            return PaymentResult(approved=False, message="Invalid payment amount")

        if payment_token == self.decline_token:
            logger.info("Simulated decline for order %s", order_id)
            return PaymentResult(approved=False, message="Your card was declined.")

        reference = f"SIM-{uuid.uuid4().hex[:12]}"
        logger.info(
            "Payment simulation: order %s captured %s (no real charge), ref %s",
            order_id,
            amount,
            reference,
        )
        return PaymentResult(approved=True, reference=reference)


def get_payment_gateway() -> PaymentGateway:
    """FastAPI dependency; override in tests or when a live processor is wired."""
    return SimulatedPaymentGateway()
