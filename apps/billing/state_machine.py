from django.db import models

from apps.cores.exceptions import ValidationError
from apps.cores.rules import Rule
from apps.users.models import Role

from .models import PaymentStatus


class PaymentAction(models.TextChoices):
    SUBMIT_PROOF = "submit_proof"
    CONFIRM = "confirm"
    REJECT = "reject"
    CHECKOUT = "checkout"


OPEN_STATUSES = frozenset({PaymentStatus.PENDING, PaymentStatus.PROOF_SUBMITTED})


def _paying_client(payment, actor):
    return payment.client_id == actor.user_id


RULES = {
    PaymentAction.SUBMIT_PROOF: Rule(
        "submit payment proof", frozenset({Role.CLIENT}),
        frozenset({PaymentStatus.PENDING}), PaymentStatus.PROOF_SUBMITTED,
        owner=_paying_client, owner_label="payment belongs to another client",
    ),
    PaymentAction.CONFIRM: Rule(
        "confirm the payment", frozenset({Role.ADMIN}),
        OPEN_STATUSES, PaymentStatus.CONFIRMED,
        allow_system=True,
    ),
    PaymentAction.REJECT: Rule(
        "reject the payment", frozenset({Role.ADMIN}),
        OPEN_STATUSES, PaymentStatus.REJECTED,
    ),
    PaymentAction.CHECKOUT: Rule(
        "start a checkout", frozenset({Role.CLIENT}),
        OPEN_STATUSES,
        owner=_paying_client, owner_label="payment belongs to another client",
    ),
}


def check(action, payment, actor):
    return RULES[action].check(payment, actor)


def clean_proof(proof_text, proof_image_url):
    proof_text = (proof_text or "").strip()
    proof_image_url = (proof_image_url or "").strip()
    if not proof_text and not proof_image_url:
        raise ValidationError("Payment proof needs a text or an image reference.")
    return proof_text, proof_image_url
