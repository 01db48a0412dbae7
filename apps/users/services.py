import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.shortcuts import get_object_or_404

from apps.audit.models import AuditAction
from apps.audit.services import record, target_ref
from apps.cores.concurrency import compare_and_set
from apps.cores.exceptions import AuthorizationError, InvalidStateError, ValidationError

from .models import Role, UserStatus

logger = logging.getLogger(__name__)

User = get_user_model()


def apply_rating(tech_id, score):
    """
    Fold one score into the technician's running average. Must run inside
    the caller's transaction; the row lock keeps concurrent ratings from
    losing an update.
    """
    tech = User.objects.select_for_update().get(pk=tech_id)
    count = tech.total_ratings
    current = tech.rating or 0.0

    tech.rating = (current * count + score) / (count + 1)
    tech.total_ratings = count + 1
    tech.save(update_fields=["rating", "total_ratings"])

    logger.info("Technician %s rated %s; average now %.2f over %s", tech_id, score, tech.rating, tech.total_ratings)
    return tech


def _set_status(actor, user_id, target, action):
    if not actor.is_admin:
        raise AuthorizationError("Only admins can change an account status.")
    if user_id == actor.user_id:
        raise ValidationError("Admins cannot change their own account status.")

    with transaction.atomic():
        user = get_object_or_404(User, pk=user_id)
        if user.status == target:
            raise InvalidStateError(f"Account {user.pk} is already {target}.")

        compare_and_set(
            User, user.pk,
            expected={"status": user.status},
            changes={"status": target},
            touch=False,
        )
        record(actor, action, target_ref("user", user.pk), details=f"Role: {user.role}")

    user.refresh_from_db()
    return user


def suspend_user(actor, user_id):
    return _set_status(actor, user_id, UserStatus.SUSPENDED, AuditAction.SUSPEND_USER)


def reactivate_user(actor, user_id):
    return _set_status(actor, user_id, UserStatus.ACTIVE, AuditAction.REACTIVATE_USER)


def registrable_roles():
    # admins are created through createsuperuser only
    return [Role.CLIENT, Role.TECH]
