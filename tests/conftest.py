from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from apps.billing import services as billing
from apps.cores.actors import Actor
from apps.tickets.services import disputes, lifecycle
from apps.users.models import Role, User, UserStatus


@pytest.fixture(autouse=True)
def _isolated_settings(settings):
    settings.GOOGLE_API_KEY = ""
    settings.STRIPE_SECRET_KEY = "sk_test_dummy"
    settings.STRIPE_WEBHOOK_SECRET = "whsec_dummy"
    settings.PLATFORM_FEE_PCT = Decimal("20")
    settings.CHANNEL_LAYERS = {"default": {"BACKEND": "channels.layers.InMemoryChannelLayer"}}


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role=Role.CLIENT, status=UserStatus.ACTIVE, **extra):
        counter["n"] += 1
        email = extra.pop("email", f"{role}{counter['n']}@example.com")
        return User.objects.create_user(email, password="Secret123", role=role, status=status, **extra)

    return _make


@pytest.fixture
def client_user(make_user):
    return make_user(Role.CLIENT)


@pytest.fixture
def other_client(make_user):
    return make_user(Role.CLIENT)


@pytest.fixture
def tech_user(make_user):
    return make_user(Role.TECH)


@pytest.fixture
def other_tech(make_user):
    return make_user(Role.TECH)


@pytest.fixture
def admin_user(make_user):
    return make_user(Role.ADMIN)


@pytest.fixture
def actor_of():
    return Actor.from_user


@pytest.fixture
def client_actor(client_user):
    return Actor.from_user(client_user)


@pytest.fixture
def tech_actor(tech_user):
    return Actor.from_user(tech_user)


@pytest.fixture
def admin_actor(admin_user):
    return Actor.from_user(admin_user)


# -------------------------------
# Tickets at each lifecycle stage
# -------------------------------

@pytest.fixture
def open_ticket(client_actor):
    return lifecycle.create_ticket(
        client_actor, "Laptop won't boot", "Black screen after the update.", category="Software/Windows",
    )


@pytest.fixture
def assigned_ticket(open_ticket, admin_actor, tech_user):
    return lifecycle.assign_ticket(admin_actor, open_ticket.pk, tech_user.pk)


@pytest.fixture
def priced_ticket(assigned_ticket, tech_actor):
    return lifecycle.set_budget(tech_actor, assigned_ticket.pk, "100.00")


@pytest.fixture
def payment(priced_ticket):
    return priced_ticket.payment


@pytest.fixture
def paid_ticket(priced_ticket, payment, admin_actor):
    billing.confirm_payment(admin_actor, payment.pk)
    priced_ticket.refresh_from_db()
    return priced_ticket


@pytest.fixture
def in_progress_ticket(paid_ticket, tech_actor):
    return lifecycle.start_work(tech_actor, paid_ticket.pk)


@pytest.fixture
def completed_ticket(in_progress_ticket, tech_actor):
    return lifecycle.finish_work(tech_actor, in_progress_ticket.pk)


@pytest.fixture
def disputed_ticket(in_progress_ticket, client_actor):
    return disputes.open_dispute(client_actor, in_progress_ticket.pk, "technician unresponsive")


# -------------------------------
# HTTP
# -------------------------------

@pytest.fixture
def api():
    def _client(user=None):
        client = APIClient()
        if user is not None:
            client.force_authenticate(user=user)
        return client

    return _client
