import logging

from django.db import transaction

from apps.billing.models import Payment
from apps.billing.services import settle_payment
from apps.cores.exceptions import InvalidStateError
from apps.notifications.services.dispatcher import dispatch
from apps.tickets import state_machine
from apps.tickets.state_machine import TicketAction

from . import lifecycle

logger = logging.getLogger(__name__)


def open_dispute(actor, ticket_id, reason):
    """Owning client contests work in progress."""
    return lifecycle.apply_transition(actor, ticket_id, TicketAction.DISPUTE, reason=reason)


def resolve_dispute(actor, ticket_id, outcome):
    """
    Admin settles a disputed ticket. Ticket and payment move together:
    in favor of the client the ticket is cancelled and the payment
    rejected; in favor of the technician the ticket completes and the
    payment is confirmed.
    """
    with transaction.atomic():
        ticket = lifecycle.load_ticket(ticket_id)
        decision = state_machine.transition(
            ticket, actor, TicketAction.RESOLVE_DISPUTE, outcome=outcome,
        )

        payment = Payment.objects.filter(ticket_id=ticket.pk).first()
        if payment is None:
            raise InvalidStateError(f"Cannot resolve a dispute: ticket {ticket.pk} has no payment.")

        settlement = decision.settlement
        decision.details = f"{decision.details}, payment: {payment.status} -> {settlement.payment_status}"

        lifecycle.commit(ticket, actor, decision)
        settle_payment(actor, payment, settlement.payment_status)
        dispatch(decision.events)

    logger.info(
        "Dispute on ticket %s resolved for the %s by %s",
        ticket.pk, settlement.winner, actor.label,
    )
    ticket.refresh_from_db()
    return ticket
