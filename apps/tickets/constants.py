from django.conf import settings
from django.db import models


class TicketStatus(models.TextChoices):
    OPEN = "open", "Open"
    ASSIGNED = "assigned", "Technician assigned"
    AWAITING_PAYMENT = "awaiting_payment", "Awaiting payment"
    PAID = "paid", "Paid"
    IN_PROGRESS = "in_progress", "In progress"
    COMPLETED = "completed", "Completed"
    DISPUTED = "disputed", "Disputed"
    CANCELLED = "cancelled", "Cancelled"


TERMINAL_STATUSES = frozenset({TicketStatus.COMPLETED, TicketStatus.CANCELLED})

# Client may still edit title/description while nobody has priced the work
CLIENT_EDITABLE_STATUSES = frozenset({TicketStatus.OPEN, TicketStatus.ASSIGNED})
CLIENT_DELETABLE_STATUSES = frozenset({TicketStatus.OPEN})


class BudgetType(models.TextChoices):
    FIXED = "fixed", "Fixed"


MIN_RATING = 1
MAX_RATING = 5

MAX_TITLE_LENGTH = 200


def ticket_categories():
    return list(settings.TICKET_CATEGORIES)


def default_category():
    return settings.DEFAULT_TICKET_CATEGORY
