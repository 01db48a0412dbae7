from django.conf import settings
from django.db import models


class NotificationLevel(models.TextChoices):
    INFO = "info", "Info"
    SUCCESS = "success", "Success"
    WARNING = "warning", "Warning"
    ERROR = "error", "Error"


class Notification(models.Model):
    """
    Universal notification model for Client, Technician, Admin.
    Only `is_read` changes after creation.
    """

    NOTIFICATION_TYPES = [
        ("ticket_created", "Ticket Created"),
        ("tech_assigned", "Technician Assigned"),
        ("budget_set", "Budget Set"),
        ("proof_submitted", "Payment Proof Submitted"),
        ("payment_confirmed", "Payment Confirmed"),
        ("payment_rejected", "Payment Rejected"),
        ("work_started", "Work Started"),
        ("work_finished", "Work Finished"),
        ("dispute_opened", "Dispute Opened"),
        ("dispute_resolved", "Dispute Resolved"),
        ("ticket_rated", "Ticket Rated"),
        ("message_posted", "New Message"),
        ("system", "System Notification"),
    ]

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications"
    )

    notif_type = models.CharField(
        max_length=50,
        choices=NOTIFICATION_TYPES
    )
    level = models.CharField(
        max_length=10,
        choices=NotificationLevel.choices,
        default=NotificationLevel.INFO,
    )

    title = models.CharField(max_length=255)
    message = models.TextField(blank=True)

    # Ticket reference the UI links to, e.g. "ticket:12"
    link = models.CharField(max_length=64, blank=True, default="")

    # Optional metadata (ticket_id, payment_id, ...)
    data = models.JSONField(default=dict, blank=True)

    is_read = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["recipient", "is_read"]),
        ]

    def __str__(self):
        return f"Notification({self.recipient_id}, {self.notif_type})"
