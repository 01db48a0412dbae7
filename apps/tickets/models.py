from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone

from .constants import MAX_RATING, MAX_TITLE_LENGTH, MIN_RATING, BudgetType, TicketStatus


class Ticket(models.Model):
    client = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="tickets",
    )
    tech = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="assigned_tickets",
    )

    status = models.CharField(
        max_length=20,
        choices=TicketStatus.choices,
        default=TicketStatus.OPEN,
    )

    title = models.CharField(max_length=MAX_TITLE_LENGTH)
    category = models.CharField(max_length=100)
    description = models.TextField()
    image_url = models.URLField(blank=True, default="")

    # Price-list snapshot at creation; later fee changes never touch it
    platform_fee_pct = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("20.00"),
        help_text="Platform fee at the time of ticket creation",
    )

    budget_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    budget_type = models.CharField(
        max_length=10,
        choices=BudgetType.choices,
        blank=True,
        default="",
    )

    dispute_reason = models.TextField(blank=True, default="")

    rating_score = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(MIN_RATING), MaxValueValidator(MAX_RATING)],
    )
    rating_comment = models.TextField(blank=True, default="")
    rated_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["status"]),
            models.Index(fields=["client", "status"]),
            models.Index(fields=["tech", "status"]),
        ]
        constraints = [
            # tech present <=> ticket has left "open"
            models.CheckConstraint(
                condition=(
                    Q(status=TicketStatus.OPEN, tech__isnull=True)
                    | (~Q(status=TicketStatus.OPEN) & Q(tech__isnull=False))
                ),
                name="ticket_tech_matches_status",
            ),
        ]

    def __str__(self):
        return f"Ticket #{self.id} | {self.title} ({self.status})"

    @property
    def has_rating(self):
        return self.rating_score is not None

    @property
    def rating(self):
        if not self.has_rating:
            return None
        return {
            "score": self.rating_score,
            "comment": self.rating_comment,
            "created_at": self.rated_at,
        }

    def is_party(self, user_id):
        return user_id is not None and user_id in (self.client_id, self.tech_id)


class Message(models.Model):
    """Chat line on a ticket. Append-only; admitted through the moderation gate."""

    ticket = models.ForeignKey(Ticket, on_delete=models.CASCADE, related_name="messages")
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="ticket_messages",
    )
    sender_role = models.CharField(max_length=10)
    text = models.TextField()
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"Message #{self.id} on ticket {self.ticket_id}"
