"""
Ticket lifecycle rules.

Nothing in here touches the database. `transition()` takes the ticket as
it was just read, the actor and the request payload, and returns the field
changes to commit plus the events the change produces. The services in
`apps.tickets.services` do the reading, the conditional write and the
side effects.
"""
from collections import namedtuple
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from django.db import models
from django.utils import timezone

from apps.billing import ledger
from apps.billing.models import PaymentStatus
from apps.cores.exceptions import AuthorizationError, InvalidStateError, ValidationError
from apps.cores.rules import Rule
from apps.notifications.events import DomainEvent, EventKind
from apps.users.models import Role, UserStatus

from .constants import (
    CLIENT_DELETABLE_STATUSES,
    CLIENT_EDITABLE_STATUSES,
    MAX_RATING,
    MAX_TITLE_LENGTH,
    MIN_RATING,
    BudgetType,
    TicketStatus,
)


class TicketAction(models.TextChoices):
    ASSIGN = "assign"
    SET_BUDGET = "set_budget"
    MARK_PAID = "mark_paid"
    START = "start"
    FINISH = "finish"
    DISPUTE = "dispute"
    RESOLVE_DISPUTE = "resolve_dispute"
    EDIT = "edit"
    DELETE = "delete"
    RATE = "rate"


class DisputeOutcome(models.TextChoices):
    FAVOR_CLIENT = "favor_client", "In favor of the client"
    FAVOR_TECH = "favor_tech", "In favor of the technician"


Settlement = namedtuple("Settlement", ["ticket_status", "payment_status", "winner"])

# One row per outcome. Settlement is all-or-nothing across ticket and payment.
SETTLEMENTS = {
    DisputeOutcome.FAVOR_CLIENT: Settlement(TicketStatus.CANCELLED, PaymentStatus.REJECTED, "client"),
    DisputeOutcome.FAVOR_TECH: Settlement(TicketStatus.COMPLETED, PaymentStatus.CONFIRMED, "technician"),
}


def _owning_client(ticket, actor):
    return ticket.client_id == actor.user_id


def _assigned_tech(ticket, actor):
    return ticket.tech_id is not None and ticket.tech_id == actor.user_id


_OWN_TICKET = "ticket belongs to another client"
_NOT_ASSIGNED = "ticket is not assigned to you"

RULES = {
    TicketAction.ASSIGN: Rule(
        "assign a technician", frozenset({Role.ADMIN, Role.TECH}),
        frozenset({TicketStatus.OPEN}), TicketStatus.ASSIGNED,
    ),
    TicketAction.SET_BUDGET: Rule(
        "set a budget", frozenset({Role.TECH}),
        frozenset({TicketStatus.ASSIGNED}), TicketStatus.AWAITING_PAYMENT,
        owner=_assigned_tech, owner_label=_NOT_ASSIGNED,
    ),
    TicketAction.MARK_PAID: Rule(
        "mark the ticket paid", frozenset({Role.ADMIN}),
        frozenset({TicketStatus.AWAITING_PAYMENT}), TicketStatus.PAID,
        allow_system=True,
    ),
    TicketAction.START: Rule(
        "start execution", frozenset({Role.TECH}),
        frozenset({TicketStatus.PAID}), TicketStatus.IN_PROGRESS,
        owner=_assigned_tech, owner_label=_NOT_ASSIGNED,
    ),
    TicketAction.FINISH: Rule(
        "finish execution", frozenset({Role.TECH}),
        frozenset({TicketStatus.IN_PROGRESS}), TicketStatus.COMPLETED,
        owner=_assigned_tech, owner_label=_NOT_ASSIGNED,
    ),
    TicketAction.DISPUTE: Rule(
        "open a dispute", frozenset({Role.CLIENT}),
        frozenset({TicketStatus.IN_PROGRESS}), TicketStatus.DISPUTED,
        owner=_owning_client, owner_label=_OWN_TICKET,
    ),
    TicketAction.RESOLVE_DISPUTE: Rule(
        "resolve a dispute", frozenset({Role.ADMIN}),
        frozenset({TicketStatus.DISPUTED}),
    ),
    TicketAction.EDIT: Rule(
        "edit the ticket", frozenset({Role.ADMIN, Role.CLIENT}),
        CLIENT_EDITABLE_STATUSES,
        owner=_owning_client, owner_label=_OWN_TICKET, admin_bypass=True,
    ),
    TicketAction.DELETE: Rule(
        "delete the ticket", frozenset({Role.ADMIN, Role.CLIENT}),
        CLIENT_DELETABLE_STATUSES,
        owner=_owning_client, owner_label=_OWN_TICKET, admin_bypass=True,
    ),
    TicketAction.RATE: Rule(
        "rate the technician", frozenset({Role.CLIENT}),
        frozenset({TicketStatus.COMPLETED}),
        owner=_owning_client, owner_label=_OWN_TICKET,
    ),
}


@dataclass
class Decision:
    action: TicketAction
    # what the row must still look like at commit time
    expected: dict
    changes: dict
    events: List[DomainEvent] = field(default_factory=list)
    details: str = ""
    split: Optional[ledger.Split] = None
    settlement: Optional[Settlement] = None


def check(action, ticket, actor):
    return RULES[action].check(ticket, actor)


def _clean_text(value, label, max_length=None):
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{label} is required.")
    if max_length and len(value) > max_length:
        raise ValidationError(f"{label} must be at most {max_length} characters.")
    return value


# ---------------------------------------------------------------------------
# per-action builders: (ticket, actor, rule, **payload) -> Decision fields
# ---------------------------------------------------------------------------

def _assign(ticket, actor, rule, tech=None):
    if ticket.tech_id is not None:
        raise InvalidStateError("Cannot assign a technician: ticket already has one.")
    if tech is None:
        raise ValidationError("A technician is required.")
    if tech.role != Role.TECH:
        raise ValidationError(f"User {tech.pk} is not a technician.")
    if tech.status != UserStatus.ACTIVE:
        raise ValidationError(f"Technician {tech.pk} is suspended.")
    if actor.is_tech and tech.pk != actor.user_id:
        raise AuthorizationError("Technicians can only accept tickets for themselves.")

    event = DomainEvent.for_ticket(EventKind.TECH_ASSIGNED, ticket, actor, tech_id=tech.pk)
    return dict(
        changes={"status": rule.target, "tech_id": tech.pk},
        events=[event],
        details=f"Tech: {tech.pk}",
    )


def _set_budget(ticket, actor, rule, amount=None):
    split = ledger.split(amount, ticket.platform_fee_pct)
    event = DomainEvent.for_ticket(
        EventKind.BUDGET_SET, ticket, actor, amount=str(split.amount_total),
    )
    return dict(
        changes={
            "status": rule.target,
            "budget_amount": split.amount_total,
            "budget_type": BudgetType.FIXED,
        },
        events=[event],
        details=(
            f"Amount: {split.amount_total}, fee: {split.platform_fee} "
            f"({ticket.platform_fee_pct}%), tech receives: {split.tech_receives}"
        ),
        split=split,
    )


def _mark_paid(ticket, actor, rule):
    return dict(
        changes={"status": rule.target},
        events=[DomainEvent.for_ticket(EventKind.PAYMENT_CONFIRMED, ticket, actor)],
    )


def _start(ticket, actor, rule):
    return dict(
        changes={"status": rule.target},
        events=[DomainEvent.for_ticket(EventKind.WORK_STARTED, ticket, actor)],
    )


def _finish(ticket, actor, rule):
    return dict(
        changes={"status": rule.target},
        events=[DomainEvent.for_ticket(EventKind.WORK_FINISHED, ticket, actor)],
    )


def _dispute(ticket, actor, rule, reason=None):
    reason = _clean_text(reason, "Dispute reason")
    return dict(
        changes={"status": rule.target, "dispute_reason": reason},
        events=[DomainEvent.for_ticket(EventKind.DISPUTE_OPENED, ticket, actor, reason=reason)],
        details=f"Reason: {reason}",
    )


def _resolve_dispute(ticket, actor, rule, outcome=None):
    try:
        outcome = DisputeOutcome(outcome)
    except ValueError:
        choices = ", ".join(DisputeOutcome.values)
        raise ValidationError(f"Unknown dispute outcome {outcome!r}; expected one of: {choices}.")

    settlement = SETTLEMENTS[outcome]
    event = DomainEvent.for_ticket(
        EventKind.DISPUTE_RESOLVED, ticket, actor,
        outcome=outcome.value, winner=settlement.winner,
    )
    return dict(
        changes={"status": settlement.ticket_status},
        events=[event],
        details=f"Outcome: {outcome.value}",
        settlement=settlement,
    )


def _edit(ticket, actor, rule, title=None, description=None):
    changes = {}
    if title is not None:
        changes["title"] = _clean_text(title, "Title", MAX_TITLE_LENGTH)
    if description is not None:
        changes["description"] = _clean_text(description, "Description")
    if not changes:
        raise ValidationError("Nothing to update: provide a title or a description.")
    return dict(changes=changes, details=f"Fields: {', '.join(sorted(changes))}")


def _delete(ticket, actor, rule):
    return dict(changes={}, details=f"Title: {ticket.title}")


def _rate(ticket, actor, rule, score=None, comment="", now=None):
    if ticket.has_rating:
        raise InvalidStateError("Cannot rate the technician: ticket already has a rating.")
    try:
        value = Decimal(str(score).strip())
    except InvalidOperation:
        raise ValidationError("Rating score must be a whole number.")
    if not value.is_finite() or value != value.to_integral_value():
        raise ValidationError("Rating score must be a whole number.")
    score = int(value)
    if not MIN_RATING <= score <= MAX_RATING:
        raise ValidationError(f"Rating score must be between {MIN_RATING} and {MAX_RATING}.")

    return dict(
        changes={
            "rating_score": score,
            "rating_comment": (comment or "").strip(),
            "rated_at": now or timezone.now(),
        },
        events=[DomainEvent.for_ticket(EventKind.TICKET_RATED, ticket, actor, score=score)],
        details=f"Score: {score}",
    )


_BUILDERS = {
    TicketAction.ASSIGN: _assign,
    TicketAction.SET_BUDGET: _set_budget,
    TicketAction.MARK_PAID: _mark_paid,
    TicketAction.START: _start,
    TicketAction.FINISH: _finish,
    TicketAction.DISPUTE: _dispute,
    TicketAction.RESOLVE_DISPUTE: _resolve_dispute,
    TicketAction.EDIT: _edit,
    TicketAction.DELETE: _delete,
    TicketAction.RATE: _rate,
}


def transition(ticket, actor, action, **payload):
    """
    Validate `action` on `ticket` for `actor` and describe its effect.

    Raises AuthorizationError, InvalidStateError or ValidationError; on
    success returns a Decision whose `expected` snapshot is what the
    conditional update must match.
    """
    rule = check(action, ticket, actor)
    built = _BUILDERS[action](ticket, actor, rule, **payload)
    return Decision(
        action=action,
        expected={"status": ticket.status, "tech_id": ticket.tech_id},
        **built,
    )
