"""
Stripe Checkout collaborator.

Only two calls matter to the lifecycle: open a checkout session for a
payment and ask whether a session has been paid. Any Stripe failure is
surfaced as CollaboratorUnavailable; a payment never proceeds silently.
"""
import logging
from collections import namedtuple
from decimal import ROUND_HALF_UP, Decimal

import stripe
from django.conf import settings

from apps.cores.exceptions import CollaboratorUnavailable

logger = logging.getLogger(__name__)

CheckoutSession = namedtuple("CheckoutSession", ["id", "url"])
SessionStatus = namedtuple("SessionStatus", ["status", "ticket_id"])

PAID = "paid"
PENDING = "pending"


def _configure():
    if not settings.STRIPE_SECRET_KEY:
        raise CollaboratorUnavailable("Payment gateway is not configured.")
    stripe.api_key = settings.STRIPE_SECRET_KEY


def to_minor_units(amount) -> int:
    # Stripe uses cents
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def create_checkout_session(ticket_id, amount, title) -> CheckoutSession:
    _configure()
    app_url = settings.APP_URL.rstrip("/")
    try:
        session = stripe.checkout.Session.create(
            payment_method_types=settings.STRIPE_PAYMENT_METHODS,
            mode="payment",
            line_items=[{
                "price_data": {
                    "currency": settings.STRIPE_CURRENCY,
                    "product_data": {
                        "name": f"Service: {title}",
                        "description": f"Payment for ticket #{ticket_id}",
                    },
                    "unit_amount": to_minor_units(amount),
                },
                "quantity": 1,
            }],
            metadata={"ticket_id": str(ticket_id)},
            success_url=(
                f"{app_url}/?payment_success=true"
                f"&session_id={{CHECKOUT_SESSION_ID}}&ticket_id={ticket_id}"
            ),
            cancel_url=f"{app_url}/?payment_cancelled=true&ticket_id={ticket_id}",
        )
    except stripe.StripeError as e:
        logger.error("Stripe checkout failed for ticket %s: %s", ticket_id, e)
        raise CollaboratorUnavailable(f"Payment gateway error: {e}")

    return CheckoutSession(id=session.id, url=session.url)


def ticket_id_of(session):
    """Ticket id stamped into the session metadata at creation, or None."""
    try:
        return int(session["metadata"]["ticket_id"])
    except (KeyError, TypeError, ValueError):
        return None


def verify_session(session_id) -> SessionStatus:
    """Payment status ("paid" or "pending") and ticket id of a checkout session."""
    _configure()
    try:
        session = stripe.checkout.Session.retrieve(session_id)
    except stripe.StripeError as e:
        logger.error("Stripe verify failed for session %s: %s", session_id, e)
        raise CollaboratorUnavailable(f"Payment gateway error: {e}")

    status = PAID if session.payment_status == "paid" else PENDING
    return SessionStatus(status, ticket_id_of(session))


def construct_webhook_event(payload, signature):
    """Raises ValueError / stripe.SignatureVerificationError on bad input."""
    return stripe.Webhook.construct_event(payload, signature, settings.STRIPE_WEBHOOK_SECRET)
