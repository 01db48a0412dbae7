from dataclasses import dataclass, field
from typing import Optional

from django.db import models


class EventKind(models.TextChoices):
    TICKET_CREATED = "ticket_created"
    TECH_ASSIGNED = "tech_assigned"
    BUDGET_SET = "budget_set"
    PROOF_SUBMITTED = "proof_submitted"
    PAYMENT_CONFIRMED = "payment_confirmed"
    PAYMENT_REJECTED = "payment_rejected"
    WORK_STARTED = "work_started"
    WORK_FINISHED = "work_finished"
    DISPUTE_OPENED = "dispute_opened"
    DISPUTE_RESOLVED = "dispute_resolved"
    TICKET_RATED = "ticket_rated"
    MESSAGE_POSTED = "message_posted"


@dataclass(frozen=True)
class DomainEvent:
    """
    Something that happened to a ticket. Transitions emit these; the
    dispatcher decides who hears about it.
    """
    kind: EventKind
    ticket_id: int
    ticket_title: str
    client_id: int
    tech_id: Optional[int]
    actor_id: Optional[int]
    actor_is_admin: bool = False
    extra: dict = field(default_factory=dict)

    @classmethod
    def for_ticket(cls, kind, ticket, actor, tech_id=None, **extra):
        return cls(
            kind=kind,
            ticket_id=ticket.pk,
            ticket_title=ticket.title,
            client_id=ticket.client_id,
            tech_id=tech_id if tech_id is not None else ticket.tech_id,
            actor_id=actor.user_id,
            actor_is_admin=actor.is_admin,
            extra=extra,
        )
