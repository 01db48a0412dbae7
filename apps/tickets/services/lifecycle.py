"""
Ticket lifecycle services.

Each operation re-reads the ticket inside its transaction, asks the state
machine for a Decision and commits it with a conditional update on the
status/tech pair it saw. Audit entry, payment row and notifications are
written in the same transaction.
"""
import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.shortcuts import get_object_or_404

from apps.audit.models import AuditAction
from apps.audit.services import record, target_ref
from apps.billing import services as billing
from apps.cores.concurrency import compare_and_set
from apps.cores.exceptions import AuthorizationError, StateConflict, ValidationError
from apps.notifications.events import DomainEvent, EventKind
from apps.notifications.services.dispatcher import dispatch
from apps.tickets import state_machine
from apps.tickets.constants import MAX_TITLE_LENGTH, ticket_categories
from apps.tickets.models import Ticket
from apps.tickets.state_machine import TicketAction
from apps.users.services import apply_rating

from .categorizer import suggest_category

logger = logging.getLogger(__name__)

User = get_user_model()

AUDIT_ACTIONS = {
    TicketAction.ASSIGN: AuditAction.ASSIGN_TECH,
    TicketAction.SET_BUDGET: AuditAction.SET_BUDGET,
    TicketAction.START: AuditAction.START_WORK,
    TicketAction.FINISH: AuditAction.FINISH_WORK,
    TicketAction.DISPUTE: AuditAction.OPEN_DISPUTE,
    TicketAction.RESOLVE_DISPUTE: AuditAction.RESOLVE_DISPUTE,
    TicketAction.EDIT: AuditAction.EDIT_TICKET,
    TicketAction.DELETE: AuditAction.DELETE_TICKET,
    TicketAction.RATE: AuditAction.RATE_TECH,
}


def load_ticket(ticket_id):
    return get_object_or_404(Ticket, pk=ticket_id)


def commit(ticket, actor, decision, extra_expected=None):
    """Write a Decision: conditional update, then its audit entry."""
    expected = dict(decision.expected, **(extra_expected or {}))
    compare_and_set(Ticket, ticket.pk, expected, decision.changes)
    record(actor, AUDIT_ACTIONS[decision.action], target_ref("ticket", ticket.pk), decision.details)


def apply_transition(actor, ticket_id, action, **payload):
    with transaction.atomic():
        ticket = load_ticket(ticket_id)
        decision = state_machine.transition(ticket, actor, action, **payload)
        commit(ticket, actor, decision)
        dispatch(decision.events)

    ticket.refresh_from_db()
    return ticket


# -------------------------------
# Creation
# -------------------------------

def create_ticket(actor, title, description, category=None, image_url=""):
    if not actor.is_client:
        raise AuthorizationError("Only clients can open tickets.")

    title = (title or "").strip()
    description = (description or "").strip()
    if not title:
        raise ValidationError("Title is required.")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(f"Title must be at most {MAX_TITLE_LENGTH} characters.")
    if not description:
        raise ValidationError("Description is required.")

    category = (category or "").strip()
    if category and category not in ticket_categories():
        raise ValidationError(f"Unknown category {category!r}.")
    if not category:
        category = suggest_category(description)

    with transaction.atomic():
        ticket = Ticket.objects.create(
            client_id=actor.user_id,
            title=title,
            description=description,
            category=category,
            image_url=(image_url or "").strip(),
            platform_fee_pct=settings.PLATFORM_FEE_PCT,
        )
        record(
            actor, AuditAction.CREATE_TICKET, target_ref("ticket", ticket.pk),
            details=f"Category: {category}",
        )
        dispatch([DomainEvent.for_ticket(EventKind.TICKET_CREATED, ticket, actor)])

    logger.info("Ticket %s opened by %s", ticket.pk, actor.label)
    return ticket


# -------------------------------
# Assignment & pricing
# -------------------------------

def _find_tech(tech_id):
    tech = User.objects.filter(pk=tech_id).first()
    if tech is None:
        raise ValidationError(f"User {tech_id} does not exist.")
    return tech


def assign_ticket(actor, ticket_id, tech_id):
    """Admin puts a technician on an open ticket."""
    return apply_transition(actor, ticket_id, TicketAction.ASSIGN, tech=_find_tech(tech_id))


def accept_ticket(actor, ticket_id):
    """A technician takes an open ticket for themselves."""
    return apply_transition(actor, ticket_id, TicketAction.ASSIGN, tech=_find_tech(actor.user_id))


def set_budget(actor, ticket_id, amount):
    """Assigned technician prices the work; opens the escrow payment."""
    with transaction.atomic():
        ticket = load_ticket(ticket_id)
        decision = state_machine.transition(ticket, actor, TicketAction.SET_BUDGET, amount=amount)
        commit(ticket, actor, decision)
        payment = billing.open_payment(ticket, ticket.tech_id, decision.split)
        dispatch(decision.events)

    logger.info("Ticket %s priced at %s (payment %s)", ticket.pk, decision.split.amount_total, payment.pk)
    ticket.refresh_from_db()
    return ticket


# -------------------------------
# Execution
# -------------------------------

def start_work(actor, ticket_id):
    return apply_transition(actor, ticket_id, TicketAction.START)


def finish_work(actor, ticket_id):
    return apply_transition(actor, ticket_id, TicketAction.FINISH)


# -------------------------------
# Edit / delete / rate
# -------------------------------

def edit_ticket(actor, ticket_id, title=None, description=None):
    return apply_transition(actor, ticket_id, TicketAction.EDIT, title=title, description=description)


def delete_ticket(actor, ticket_id):
    with transaction.atomic():
        ticket = load_ticket(ticket_id)
        decision = state_machine.transition(ticket, actor, TicketAction.DELETE)

        deleted, _ = Ticket.objects.filter(pk=ticket.pk, **decision.expected).delete()
        if not deleted:
            raise StateConflict(f"Ticket {ticket.pk} changed concurrently; expected {decision.expected}.")
        record(actor, AuditAction.DELETE_TICKET, target_ref("ticket", ticket.pk), decision.details)

    logger.info("Ticket %s deleted by %s", ticket_id, actor.label)


def rate_ticket(actor, ticket_id, score, comment=""):
    """Owning client rates the technician once the work is completed."""
    with transaction.atomic():
        ticket = load_ticket(ticket_id)
        decision = state_machine.transition(
            ticket, actor, TicketAction.RATE, score=score, comment=comment,
        )
        # a second rating racing this one must lose
        commit(ticket, actor, decision, extra_expected={"rating_score__isnull": True})
        apply_rating(ticket.tech_id, decision.changes["rating_score"])
        dispatch(decision.events)

    ticket.refresh_from_db()
    return ticket
