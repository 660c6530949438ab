# app/services/payment_provider.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import stripe

from app.core.config import Settings
from app.core.errors import BadRequest, ProviderUnavailable
from app.models.case import Case
from app.models.enums import PaymentProvider
from app.models.payment import Payment
from app.models.quote import Quote

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutSession:
    redirect_url: str
    session_id: Optional[str] = None
    # provider-side state: open | complete | expired
    status: str = "open"

    @property
    def is_open(self) -> bool:
        return self.status == "open"


class MockCheckoutProvider:
    """
    Dev-only provider: no external session, completion arrives through
    POST /payments/mock/complete.
    """

    name = PaymentProvider.mock

    def __init__(self, settings: Settings):
        self.base_url = settings.public_base_url.rstrip("/")

    def create_session(self, *, payment: Payment, quote: Quote, case: Case) -> CheckoutSession:
        return CheckoutSession(redirect_url=f"{self.base_url}/mock/checkout?pid={payment.id}")

    def retrieve_session(self, session_id: str) -> Optional[CheckoutSession]:
        return None


class StripeCheckoutProvider:
    """
    Stripe Checkout. The charged amount always comes from the payment row,
    never from the client.
    """

    name = PaymentProvider.stripe

    def __init__(self, settings: Settings):
        self.api_key = settings.stripe_secret_key
        self.currency = settings.stripe_currency
        self.base_url = settings.public_base_url.rstrip("/")

    def _configure(self) -> None:
        if not self.api_key:
            raise ProviderUnavailable("Stripe not configured. Set STRIPE_SECRET_KEY.")
        stripe.api_key = self.api_key

    def create_session(self, *, payment: Payment, quote: Quote, case: Case) -> CheckoutSession:
        self._configure()
        pid = str(payment.id)
        try:
            sess = stripe.checkout.Session.create(
                mode="payment",
                success_url=f"{self.base_url}/payments/success?pid={pid}",
                cancel_url=f"{self.base_url}/payments/cancel?pid={pid}",
                client_reference_id=pid,
                metadata={
                    "payment_id": pid,
                    "quote_id": str(quote.id),
                    "case_id": str(case.id),
                    "client_id": case.client_id,
                    "amount_cents": str(payment.amount_cents),
                },
                line_items=[
                    {
                        "price_data": {
                            "currency": self.currency,
                            "product_data": {
                                "name": f"Legal case #{case.id}",
                                "description": f"Case engagement ({quote.days} days)",
                            },
                            "unit_amount": payment.amount_cents,
                        },
                        "quantity": 1,
                    }
                ],
            )
        except stripe.StripeError as e:
            log.error("stripe checkout failed", extra={"payment_id": pid, "error": str(e)})
            raise ProviderUnavailable("Billing service unavailable.") from e

        return CheckoutSession(redirect_url=sess.url, session_id=sess.id)

    def retrieve_session(self, session_id: str) -> Optional[CheckoutSession]:
        self._configure()
        try:
            sess = stripe.checkout.Session.retrieve(session_id)
        except stripe.StripeError as e:
            raise ProviderUnavailable("Billing service unavailable.") from e
        return CheckoutSession(redirect_url=sess.url, session_id=sess.id, status=sess.status)

    def receipt_number(self, payment_intent: str) -> Optional[str]:
        """
        Receipt number of the intent's latest charge, for the audit reason.
        Best-effort: None when Stripe is not configured or the lookup fails.
        """
        if not self.api_key:
            return None
        stripe.api_key = self.api_key
        try:
            pi = stripe.PaymentIntent.retrieve(payment_intent, expand=["latest_charge"])
        except stripe.StripeError as e:
            log.warning("receipt lookup failed", extra={"payment_intent": payment_intent, "error": str(e)})
            return None
        charge = getattr(pi, "latest_charge", None)
        if charge is None or isinstance(charge, str):
            return None
        return getattr(charge, "receipt_number", None) or None


def get_checkout_provider(settings: Settings):
    if settings.payment_provider == PaymentProvider.stripe.value:
        return StripeCheckoutProvider(settings)
    return MockCheckoutProvider(settings)


def verify_stripe_event(payload: bytes, signature: str, secret: Optional[str]) -> Dict[str, Any]:
    """
    Signature check is delegated to the stripe library; the event body is
    then read as plain JSON.
    """
    if not secret:
        raise ProviderUnavailable("Stripe webhook not configured.")
    try:
        stripe.Webhook.construct_event(payload, signature, secret)
    except stripe.SignatureVerificationError as e:
        raise BadRequest("Signature verification failed.") from e
    except ValueError as e:
        raise BadRequest("Invalid payload.") from e
    return json.loads(payload)
