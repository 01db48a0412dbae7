import logging

from django.db import transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone

from apps.audit.models import AuditAction
from apps.audit.services import record, target_ref
from apps.cores.actors import Actor
from apps.cores.concurrency import compare_and_set
from apps.cores.exceptions import ValidationError
from apps.notifications.events import DomainEvent, EventKind
from apps.notifications.services.dispatcher import dispatch
from apps.tickets import state_machine as ticket_rules
from apps.tickets.models import Ticket

from . import gateway
from .models import Payment, PaymentMethod, PaymentStatus
from .state_machine import PaymentAction, check, clean_proof

logger = logging.getLogger(__name__)


def load_payment(payment_id):
    return get_object_or_404(Payment, pk=payment_id)


def open_payment(ticket, tech_id, split, method=PaymentMethod.PIX):
    """
    Create the escrow record for `ticket`. Runs inside the caller's
    transaction; the OneToOne on ticket refuses a second payment.
    """
    now = timezone.now()
    return Payment.objects.create(
        ticket=ticket,
        client_id=ticket.client_id,
        tech_id=tech_id,
        method=method,
        status=PaymentStatus.PENDING,
        amount_total=split.amount_total,
        platform_fee=split.platform_fee,
        tech_receives=split.tech_receives,
        created_at=now,
        updated_at=now,
    )


def submit_proof(actor, payment_id, proof_text="", proof_image_url=""):
    with transaction.atomic():
        payment = load_payment(payment_id)
        rule = check(PaymentAction.SUBMIT_PROOF, payment, actor)
        proof_text, proof_image_url = clean_proof(proof_text, proof_image_url)

        compare_and_set(
            Payment, payment.pk,
            expected={"status": payment.status},
            changes={
                "status": rule.target,
                "proof_text": proof_text,
                "proof_image_url": proof_image_url,
            },
        )
        record(actor, AuditAction.SUBMIT_PROOF, target_ref("payment", payment.pk))
        dispatch([DomainEvent.for_ticket(EventKind.PROOF_SUBMITTED, payment.ticket, actor)])

    payment.refresh_from_db()
    return payment


def _confirm(actor, payment):
    rule = check(PaymentAction.CONFIRM, payment, actor)
    ticket = Ticket.objects.get(pk=payment.ticket_id)
    decision = ticket_rules.transition(ticket, actor, ticket_rules.TicketAction.MARK_PAID)

    compare_and_set(
        Payment, payment.pk,
        expected={"status": payment.status},
        changes={
            "status": rule.target,
            "confirmed_by_id": actor.user_id,
            "confirmed_at": timezone.now(),
        },
    )
    compare_and_set(Ticket, ticket.pk, decision.expected, decision.changes)
    record(
        actor, AuditAction.CONFIRM_PAYMENT, target_ref("payment", payment.pk),
        details=f"Ticket: {ticket.pk}",
    )
    dispatch(decision.events)


def confirm_payment(actor, payment_id):
    """Admin confirms the escrow; the ticket moves to paid in the same commit."""
    with transaction.atomic():
        payment = load_payment(payment_id)
        _confirm(actor, payment)

    payment.refresh_from_db()
    return payment


def reject_payment(actor, payment_id, reason=""):
    """
    Admin rejects the escrow. The ticket keeps its status; see DESIGN.md
    for why rejection does not roll the ticket back.
    """
    with transaction.atomic():
        payment = load_payment(payment_id)
        rule = check(PaymentAction.REJECT, payment, actor)

        compare_and_set(
            Payment, payment.pk,
            expected={"status": payment.status},
            changes={"status": rule.target},
        )
        record(
            actor, AuditAction.REJECT_PAYMENT, target_ref("payment", payment.pk),
            details=(reason or "").strip(),
        )
        dispatch([DomainEvent.for_ticket(EventKind.PAYMENT_REJECTED, payment.ticket, actor)])

    payment.refresh_from_db()
    return payment


def settle_payment(actor, payment, status):
    """
    Force a payment into `status` as part of a dispute settlement. This is
    the one path allowed to move a payment out of a terminal status.
    """
    if payment.status == status:
        return payment

    changes = {"status": status}
    if status == PaymentStatus.CONFIRMED and payment.confirmed_at is None:
        changes.update(confirmed_by_id=actor.user_id, confirmed_at=timezone.now())

    compare_and_set(Payment, payment.pk, expected={"status": payment.status}, changes=changes)
    payment.refresh_from_db()
    return payment


# -------------------------------
# Gateway (Stripe Checkout)
# -------------------------------

def start_checkout(actor, payment_id):
    """Open a Stripe Checkout session for the payment; returns the redirect URL."""
    payment = load_payment(payment_id)
    check(PaymentAction.CHECKOUT, payment, actor)
    ticket = payment.ticket

    # network call stays outside the transaction
    session = gateway.create_checkout_session(ticket.pk, payment.amount_total, ticket.title)

    with transaction.atomic():
        payment = load_payment(payment_id)
        check(PaymentAction.CHECKOUT, payment, actor)

        compare_and_set(
            Payment, payment.pk,
            expected={"status": payment.status},
            changes={"checkout_session_id": session.id, "method": PaymentMethod.CARD},
        )
        record(
            actor, AuditAction.START_CHECKOUT, target_ref("payment", payment.pk),
            details=f"Session: {session.id}",
        )

    return session.url


def _payment_for_session(session_id, ticket_id):
    """
    Latest session id first; an older session of the same payment is
    matched through the ticket id stamped in its metadata.
    """
    payment = Payment.objects.filter(checkout_session_id=session_id).first()
    if payment is None and ticket_id is not None:
        payment = Payment.objects.filter(ticket_id=ticket_id).first()
        if payment is not None:
            logger.info(
                "Session %s matched payment %s through ticket %s",
                session_id, payment.pk, ticket_id,
            )
    if payment is None:
        raise ValidationError(f"No payment is waiting on checkout session {session_id}.")
    return payment


def confirm_by_gateway(session_id, verified=False, ticket_id=None):
    """
    Gateway-side confirmation (webhook or polling). Same effect as an admin
    confirm, with the system as actor. Returns the gateway status.

    `verified` means the caller already holds a paid session (webhook) and
    passes its metadata ticket id; otherwise Stripe is asked.
    """
    if not session_id:
        raise ValidationError("A checkout session id is required.")

    if verified:
        status = gateway.PAID
    else:
        status, ticket_id = gateway.verify_session(session_id)
    if status != gateway.PAID:
        return status

    with transaction.atomic():
        payment = _payment_for_session(session_id, ticket_id)

        if payment.status == PaymentStatus.CONFIRMED:
            logger.info("Checkout session %s already confirmed", session_id)
            return status

        _confirm(Actor.system("gateway"), payment)
        logger.info("Payment %s confirmed by gateway session %s", payment.pk, session_id)

    return status
