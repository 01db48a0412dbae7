from django.conf import settings
from django.db import models
from django.utils import timezone


class AuditAction(models.TextChoices):
    CREATE_TICKET = "CREATE_TICKET", "Create ticket"
    ASSIGN_TECH = "ASSIGN_TECH", "Assign technician"
    SET_BUDGET = "SET_BUDGET", "Set budget"
    SUBMIT_PROOF = "SUBMIT_PROOF", "Submit payment proof"
    CONFIRM_PAYMENT = "CONFIRM_PAYMENT", "Confirm payment"
    REJECT_PAYMENT = "REJECT_PAYMENT", "Reject payment"
    START_WORK = "START_WORK", "Start execution"
    FINISH_WORK = "FINISH_WORK", "Finish execution"
    OPEN_DISPUTE = "OPEN_DISPUTE", "Open dispute"
    RESOLVE_DISPUTE = "RESOLVE_DISPUTE", "Resolve dispute"
    EDIT_TICKET = "EDIT_TICKET", "Edit ticket"
    DELETE_TICKET = "DELETE_TICKET", "Delete ticket"
    RATE_TECH = "RATE_TECH", "Rate technician"
    START_CHECKOUT = "START_CHECKOUT", "Start checkout"
    SUSPEND_USER = "SUSPEND_USER", "Suspend user"
    REACTIVATE_USER = "REACTIVATE_USER", "Reactivate user"


class AuditLogEntry(models.Model):
    """
    Durable record of who did what. Rows are written once and never
    updated or deleted.
    """

    # Null for the system / payment gateway actor
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="audit_entries",
    )
    actor_label = models.CharField(max_length=255)

    action = models.CharField(max_length=32, choices=AuditAction.choices)

    # "ticket:12", "payment:7", "user:3"; kept as text so entries outlive their targets
    target_ref = models.CharField(max_length=64, db_index=True)
    details = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(default=timezone.now, editable=False)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["action"]),
        ]

    def __str__(self):
        return f"{self.action} {self.target_ref} by {self.actor_label}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValueError("Audit log entries are write-once.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Audit log entries cannot be deleted.")
