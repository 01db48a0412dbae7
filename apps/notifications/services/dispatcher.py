"""
Turns lifecycle events into notification rows.

Who hears about what lives here and nowhere else. Delivery is best-effort:
each event is written in its own savepoint, so a failing notification is
logged and dropped while the transition that produced it still commits.
If the transition itself rolls back, its notifications go with it.
"""
import logging

from django.contrib.auth import get_user_model
from django.db import transaction

from apps.notifications.events import EventKind
from apps.notifications.models import NotificationLevel
from apps.notifications.services.create_notifications import notify_user

logger = logging.getLogger(__name__)

User = get_user_model()


def _admins(event):
    return list(User.objects.active_admins().values_list("id", flat=True))


def _client(event):
    return [event.client_id]


def _tech(event):
    return [event.tech_id] if event.tech_id else []


def _parties(event):
    return _client(event) + _tech(event)


def _assignment_recipients(event):
    # a tech who accepted on their own already knows
    return _parties(event) if event.actor_is_admin else _client(event)


# kind -> (recipients, level, title, message template)
RULES = {
    EventKind.TICKET_CREATED: (
        _admins, NotificationLevel.INFO,
        "New ticket",
        'Ticket "{title}" was opened and is waiting for a technician.',
    ),
    EventKind.TECH_ASSIGNED: (
        _assignment_recipients, NotificationLevel.INFO,
        "Technician assigned",
        'A technician was assigned to "{title}".',
    ),
    EventKind.BUDGET_SET: (
        _client, NotificationLevel.INFO,
        "Budget ready",
        'The technician set a budget of {amount} for "{title}". Payment is pending.',
    ),
    EventKind.PROOF_SUBMITTED: (
        _admins, NotificationLevel.INFO,
        "Payment proof submitted",
        'The client submitted payment proof for "{title}".',
    ),
    EventKind.PAYMENT_CONFIRMED: (
        _parties, NotificationLevel.SUCCESS,
        "Payment confirmed",
        'Payment for "{title}" was confirmed. Work can start.',
    ),
    EventKind.PAYMENT_REJECTED: (
        _parties, NotificationLevel.ERROR,
        "Payment rejected",
        'Payment for "{title}" was rejected.',
    ),
    EventKind.WORK_STARTED: (
        _client, NotificationLevel.INFO,
        "Work started",
        'The technician started working on "{title}".',
    ),
    EventKind.WORK_FINISHED: (
        _client, NotificationLevel.SUCCESS,
        "Work finished",
        '"{title}" is complete. Please rate the technician.',
    ),
    EventKind.DISPUTE_OPENED: (
        lambda event: _admins(event) + _tech(event), NotificationLevel.WARNING,
        "Dispute opened",
        'The client disputed "{title}": {reason}',
    ),
    EventKind.DISPUTE_RESOLVED: (
        _parties, NotificationLevel.INFO,
        "Dispute resolved",
        'The dispute on "{title}" was resolved in favor of the {winner}.',
    ),
    EventKind.TICKET_RATED: (
        _tech, NotificationLevel.SUCCESS,
        "New rating",
        'You received {score} stars for "{title}".',
    ),
    EventKind.MESSAGE_POSTED: (
        _parties, NotificationLevel.INFO,
        "New message",
        'New message on "{title}".',
    ),
}


def recipients_for(event):
    """Recipient ids for `event`, never including the actor."""
    recipients_fn = RULES[event.kind][0]
    seen = []
    for user_id in recipients_fn(event):
        if user_id and user_id != event.actor_id and user_id not in seen:
            seen.append(user_id)
    return seen


def _deliver(event):
    _, level, title, template = RULES[event.kind]
    message = template.format(title=event.ticket_title, **event.extra)
    return [
        notify_user(
            recipient_id,
            notif_type=event.kind.value,
            title=title,
            message=message,
            level=level,
            link=f"ticket:{event.ticket_id}",
            data={"ticket_id": event.ticket_id, **event.extra},
        )
        for recipient_id in recipients_for(event)
    ]


def dispatch(events):
    created = []
    for event in events:
        try:
            with transaction.atomic():
                created.extend(_deliver(event))
        except Exception:
            logger.exception("Dropping notifications for %s on ticket %s", event.kind, event.ticket_id)
    return created
