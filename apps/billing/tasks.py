import logging

from celery import shared_task

from apps.cores.exceptions import LifecycleError

from . import gateway, services
from .models import Payment
from .state_machine import OPEN_STATUSES

logger = logging.getLogger(__name__)


@shared_task(bind=True, autoretry_for=(Exception,), retry_kwargs={"max_retries": 3})
def reconcile_checkout_sessions(self):
    """
    Poll Stripe for open checkout sessions the webhook never reported.
    Returns how many payments were confirmed.
    """
    session_ids = list(
        Payment.objects
        .filter(status__in=OPEN_STATUSES)
        .exclude(checkout_session_id="")
        .values_list("checkout_session_id", flat=True)
    )

    confirmed = 0
    for session_id in session_ids:
        try:
            if services.confirm_by_gateway(session_id) == gateway.PAID:
                confirmed += 1
        except LifecycleError as e:
            logger.warning("Could not reconcile session %s: %s", session_id, e.detail)

    if confirmed:
        logger.info("Reconciled %s checkout session(s)", confirmed)
    return confirmed
