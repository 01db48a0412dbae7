from unittest import mock

import pytest
from django.db.models import Q

from apps.notifications.events import DomainEvent, EventKind
from apps.notifications.models import Notification
from apps.notifications.services import dispatcher
from apps.tickets.services import lifecycle

pytestmark = pytest.mark.django_db


def _event(kind, actor_id, client_id=1, tech_id=2, actor_is_admin=False, **extra):
    return DomainEvent(
        kind=kind, ticket_id=9, ticket_title="Router", client_id=client_id,
        tech_id=tech_id, actor_id=actor_id, actor_is_admin=actor_is_admin, extra=extra,
    )


def test_actor_is_never_a_recipient():
    event = _event(EventKind.MESSAGE_POSTED, actor_id=1)
    assert dispatcher.recipients_for(event) == [2]


def test_assignment_by_admin_tells_both_parties():
    event = _event(EventKind.TECH_ASSIGNED, actor_id=50, actor_is_admin=True)
    assert dispatcher.recipients_for(event) == [1, 2]


def test_self_accept_tells_only_the_client():
    event = _event(EventKind.TECH_ASSIGNED, actor_id=2)
    assert dispatcher.recipients_for(event) == [1]


def test_new_ticket_goes_to_active_admins(client_actor, admin_user, make_user):
    suspended_admin = make_user("admin", status="suspended")
    ticket = lifecycle.create_ticket(client_actor, "Mail", "Outlook keeps asking for a password", category="Outros")

    recipients = set(
        Notification.objects.filter(notif_type="ticket_created").values_list("recipient_id", flat=True)
    )
    assert recipients == {admin_user.pk}
    assert suspended_admin.pk not in recipients
    notif = Notification.objects.get(recipient=admin_user)
    assert notif.data["ticket_id"] == ticket.pk
    assert "Mail" in notif.message


def test_no_transition_notifies_its_actor(completed_ticket, client_user, tech_user, admin_user):
    # every actor in the fixture chain is excluded from its own event
    own = Notification.objects.filter(
        Q(recipient=client_user, notif_type__in=["ticket_created", "proof_submitted"])
        | Q(recipient=tech_user, notif_type__in=["budget_set", "work_started", "work_finished"])
        | Q(recipient=admin_user, notif_type="payment_confirmed")
    )
    assert not own.exists()


def test_budget_notification_carries_amount(priced_ticket, client_user):
    notif = Notification.objects.get(recipient=client_user, notif_type="budget_set")
    assert "100.00" in notif.message


def test_failed_notification_does_not_block_transition(open_ticket, admin_actor, tech_user):
    with mock.patch.object(dispatcher, "notify_user", side_effect=RuntimeError("db hiccup")):
        ticket = lifecycle.assign_ticket(admin_actor, open_ticket.pk, tech_user.pk)

    assert ticket.tech_id == tech_user.pk
    assert not Notification.objects.filter(notif_type="tech_assigned").exists()


def test_failed_transition_leaves_no_notification(assigned_ticket, tech_actor):
    with mock.patch(
        "apps.billing.services.open_payment", side_effect=RuntimeError("boom"),
    ):
        with pytest.raises(RuntimeError):
            lifecycle.set_budget(tech_actor, assigned_ticket.pk, "60")

    assert not Notification.objects.filter(notif_type="budget_set").exists()


class TestEndpoints:
    def test_list_and_mark_read(self, api, priced_ticket, client_user):
        client = api(client_user)

        response = client.get("/api/notifications/", {"is_read": "false"})
        assert response.status_code == 200
        ids = [n["id"] for n in response.json()]
        assert ids

        response = client.post(f"/api/notifications/{ids[0]}/read/")
        assert response.status_code == 200
        assert response.json()["is_read"] is True

        response = client.post("/api/notifications/read-all/")
        assert response.status_code == 200
        assert not Notification.objects.filter(recipient=client_user, is_read=False).exists()

    def test_cannot_read_others_notifications(self, api, priced_ticket, client_user, tech_user):
        notif = Notification.objects.filter(recipient=client_user).first()
        response = api(tech_user).post(f"/api/notifications/{notif.pk}/read/")
        assert response.status_code == 404
