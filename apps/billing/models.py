from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PROOF_SUBMITTED = "proof_submitted", "Proof submitted"
    CONFIRMED = "confirmed", "Confirmed"
    REJECTED = "rejected", "Rejected"


class PaymentMethod(models.TextChoices):
    PIX = "pix", "PIX"
    CARD = "card", "Card"


class Payment(models.Model):
    """
    Escrow record for one ticket, created when the technician sets a budget.
    The money split is computed once at creation and never recomputed.
    """

    ticket = models.OneToOneField(
        "tickets.Ticket",
        on_delete=models.CASCADE,
        related_name="payment",
    )

    # Denormalized from the ticket at creation
    client = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="client_payments",
    )
    tech = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="tech_payments",
    )

    method = models.CharField(
        max_length=10,
        choices=PaymentMethod.choices,
        default=PaymentMethod.PIX,
    )
    status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )

    amount_total = models.DecimalField(max_digits=12, decimal_places=2)
    platform_fee = models.DecimalField(max_digits=12, decimal_places=2)
    tech_receives = models.DecimalField(max_digits=12, decimal_places=2)

    proof_text = models.TextField(blank=True, default="")
    proof_image_url = models.URLField(blank=True, default="")

    checkout_session_id = models.CharField(max_length=255, blank=True, default="", db_index=True)

    confirmed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="confirmed_payments",
    )
    confirmed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["status"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount_total=F("platform_fee") + F("tech_receives")),
                name="payment_split_adds_up",
            ),
            models.CheckConstraint(
                condition=Q(amount_total__gt=0),
                name="payment_amount_positive",
            ),
        ]

    def __str__(self):
        return f"Payment #{self.id} → Ticket {self.ticket_id} ({self.status})"

    @property
    def is_terminal(self):
        return self.status in (PaymentStatus.CONFIRMED, PaymentStatus.REJECTED)
