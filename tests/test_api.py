from unittest import mock

import pytest

from apps.billing import gateway
from apps.billing.models import Payment, PaymentStatus
from apps.moderation import classifier
from apps.moderation.classifier import Verdict
from apps.tickets.constants import TicketStatus
from apps.tickets.services import lifecycle
from apps.users.models import User, UserStatus

pytestmark = pytest.mark.django_db


class TestAuth:
    def test_register_and_login(self, api):
        response = api().post("/api/auth/register/", {
            "email": "New.Tech@Example.com",
            "role": "tech",
            "password": "Secret123",
            "confirm_password": "Secret123",
        }, format="json")
        assert response.status_code == 201
        assert response.json()["user"]["email"] == "new.tech@example.com"
        assert response.json()["user"]["role"] == "tech"

        response = api().post("/api/auth/login/", {
            "email": "new.tech@example.com", "password": "Secret123",
        }, format="json")
        assert response.status_code == 200
        assert "access" in response.json()["data"]

    def test_cannot_register_as_admin(self, api):
        response = api().post("/api/auth/register/", {
            "email": "boss@example.com", "role": "admin",
            "password": "Secret123", "confirm_password": "Secret123",
        }, format="json")
        assert response.status_code == 400

    def test_token_pair(self, api, client_user):
        response = api().post("/api/token/", {"email": client_user.email, "password": "Secret123"}, format="json")
        assert response.status_code == 200
        assert {"access", "refresh"} <= set(response.json())

    def test_me(self, api, tech_user):
        response = api(tech_user).get("/api/me/")
        assert response.status_code == 200
        assert response.json()["role"] == "tech"

    def test_anonymous_is_refused(self, api):
        assert api().get("/api/tickets/").status_code == 401


class TestTicketEndpoints:
    def test_walkthrough(self, api, client_user, tech_user, admin_user):
        client, tech, admin = api(client_user), api(tech_user), api(admin_user)

        response = client.post("/api/tickets/", {
            "title": "Printer offline",
            "description": "The office printer vanished from the network",
            "category": "Configuração de Rede",
        }, format="json")
        assert response.status_code == 201
        ticket_id = response.json()["id"]

        response = tech.post(f"/api/tickets/{ticket_id}/accept/")
        assert response.status_code == 200
        assert response.json()["status"] == TicketStatus.ASSIGNED

        response = tech.post(f"/api/tickets/{ticket_id}/budget/", {"amount": "100.00"}, format="json")
        assert response.status_code == 200
        payment = response.json()["payment"]
        assert payment["platform_fee"] == "20.00"
        assert payment["tech_receives"] == "80.00"

        response = client.post(f"/api/payments/{payment['id']}/proof/", {"proof_text": "PIX e2e id 42"}, format="json")
        assert response.status_code == 200
        assert response.json()["status"] == PaymentStatus.PROOF_SUBMITTED

        response = client.post(f"/api/payments/{payment['id']}/confirm/")
        assert response.status_code == 403

        response = admin.post(f"/api/payments/{payment['id']}/confirm/")
        assert response.status_code == 200

        assert tech.post(f"/api/tickets/{ticket_id}/start/").json()["status"] == TicketStatus.IN_PROGRESS
        assert tech.post(f"/api/tickets/{ticket_id}/finish/").json()["status"] == TicketStatus.COMPLETED

        response = client.post(f"/api/tickets/{ticket_id}/rate/", {"score": 5, "comment": "great"}, format="json")
        assert response.status_code == 200
        assert response.json()["rating"]["score"] == 5

        response = client.post(f"/api/tickets/{ticket_id}/rate/", {"score": 4}, format="json")
        assert response.status_code == 409

    def test_invalid_transition_is_a_conflict(self, api, open_ticket, tech_user):
        response = api(tech_user).post(f"/api/tickets/{open_ticket.pk}/budget/", {"amount": "10"}, format="json")
        assert response.status_code == 409

    def test_visibility(self, api, open_ticket, assigned_ticket, client_user, other_client, tech_user, other_tech):
        assert api(other_client).get(f"/api/tickets/{open_ticket.pk}/").status_code == 404
        assert api(client_user).get(f"/api/tickets/{open_ticket.pk}/").status_code == 200

        # open pool is visible to every tech, assignments only to the assignee
        other_ids = [t["id"] for t in api(other_tech).get("/api/tickets/").json()]
        assert other_ids == []

    def test_tech_sees_open_pool(self, api, client_actor, make_user):
        ticket = lifecycle.create_ticket(client_actor, "Backup", "Set up nightly backup", category="Outros")
        tech = make_user("tech")
        ids = [t["id"] for t in api(tech).get("/api/tickets/").json()]
        assert ids == [ticket.pk]

    def test_dispute_round_trip(self, api, in_progress_ticket, client_user, admin_user):
        response = api(client_user).post(
            f"/api/tickets/{in_progress_ticket.pk}/dispute/", {"reason": "technician unresponsive"}, format="json",
        )
        assert response.status_code == 200
        assert response.json()["status"] == TicketStatus.DISPUTED

        response = api(admin_user).post(
            f"/api/tickets/{in_progress_ticket.pk}/resolve-dispute/", {"outcome": "favor_client"}, format="json",
        )
        assert response.status_code == 200
        assert response.json()["status"] == TicketStatus.CANCELLED
        assert response.json()["payment"]["status"] == PaymentStatus.REJECTED

    def test_edit_and_delete(self, api, open_ticket, client_user):
        client = api(client_user)
        response = client.patch(f"/api/tickets/{open_ticket.pk}/", {"title": "Renamed"}, format="json")
        assert response.status_code == 200
        assert response.json()["title"] == "Renamed"

        assert client.delete(f"/api/tickets/{open_ticket.pk}/").status_code == 204

    def test_messages(self, api, assigned_ticket, client_user, tech_user):
        with mock.patch.object(classifier, "classify", return_value=Verdict(True, "")):
            response = api(client_user).post(
                f"/api/tickets/{assigned_ticket.pk}/messages/", {"text": "Hello"}, format="json",
            )
        assert response.status_code == 201

        with mock.patch.object(classifier, "classify", return_value=Verdict(False, "No e-mails")):
            response = api(tech_user).post(
                f"/api/tickets/{assigned_ticket.pk}/messages/", {"text": "mail me at t@x.io"}, format="json",
            )
        assert response.status_code == 400

        response = api(tech_user).get(f"/api/tickets/{assigned_ticket.pk}/messages/")
        assert [m["text"] for m in response.json()] == ["Hello"]

    def test_suggest_category(self, api, client_user):
        response = api(client_user).post("/api/tickets/suggest-category/", {"description": "virus"}, format="json")
        assert response.status_code == 200
        assert response.json() == {"category": "Outros"}

    def test_suspended_user_is_refused(self, api, open_ticket, client_user):
        User.objects.filter(pk=client_user.pk).update(status=UserStatus.SUSPENDED)
        client_user.refresh_from_db()
        assert api(client_user).get("/api/tickets/").status_code == 403


class TestPaymentEndpoints:
    def test_checkout_and_verify(self, api, payment, client_user):
        session = gateway.CheckoutSession("cs_test_9", "https://checkout.stripe.test/9")
        with mock.patch.object(gateway, "create_checkout_session", return_value=session):
            response = api(client_user).post(
                "/api/create-checkout-session/", {"ticket_id": payment.ticket_id}, format="json",
            )
        assert response.status_code == 200
        assert response.json() == {"checkout_url": session.url}

        paid = gateway.SessionStatus(gateway.PAID, payment.ticket_id)
        with mock.patch.object(gateway, "verify_session", return_value=paid):
            response = api(client_user).get("/api/verify-payment/cs_test_9/")
        assert response.json() == {"status": "paid"}
        assert Payment.objects.get(pk=payment.pk).status == PaymentStatus.CONFIRMED

    def test_gateway_down_is_503(self, api, payment, client_user, settings):
        settings.STRIPE_SECRET_KEY = ""
        response = api(client_user).post(f"/api/payments/{payment.pk}/checkout/")
        assert response.status_code == 503

    def test_webhook_confirms_paid_session(self, api, payment):
        Payment.objects.filter(pk=payment.pk).update(checkout_session_id="cs_hook")
        event = {
            "type": "checkout.session.completed",
            "data": {"object": {"id": "cs_hook", "payment_status": "paid"}},
        }
        with mock.patch.object(gateway, "construct_webhook_event", return_value=event):
            response = api().post(
                "/api/stripe-webhook/", data="{}", content_type="application/json",
                HTTP_STRIPE_SIGNATURE="t=1,v1=abc",
            )
        assert response.status_code == 200
        assert Payment.objects.get(pk=payment.pk).status == PaymentStatus.CONFIRMED

    def test_webhook_matches_earlier_session_by_metadata(self, api, payment):
        Payment.objects.filter(pk=payment.pk).update(checkout_session_id="cs_second")
        event = {
            "type": "checkout.session.completed",
            "data": {"object": {
                "id": "cs_first",
                "payment_status": "paid",
                "metadata": {"ticket_id": str(payment.ticket_id)},
            }},
        }
        with mock.patch.object(gateway, "construct_webhook_event", return_value=event):
            response = api().post(
                "/api/stripe-webhook/", data="{}", content_type="application/json",
                HTTP_STRIPE_SIGNATURE="t=1,v1=abc",
            )
        assert response.status_code == 200
        assert Payment.objects.get(pk=payment.pk).status == PaymentStatus.CONFIRMED

    def test_webhook_bad_signature(self, api):
        with mock.patch.object(gateway, "construct_webhook_event", side_effect=ValueError("bad payload")):
            response = api().post("/api/stripe-webhook/", data="{}", content_type="application/json")
        assert response.status_code == 400

    def test_admin_lists_payments(self, api, payment, admin_user, other_client):
        assert len(api(admin_user).get("/api/payments/", {"status": "pending"}).json()) == 1
        assert api(other_client).get("/api/payments/").json() == []


class TestAdminEndpoints:
    def test_audit_log_is_admin_only(self, api, open_ticket, admin_user, client_user):
        assert api(client_user).get("/api/admin/audit-logs/").status_code == 403
        response = api(admin_user).get("/api/admin/audit-logs/", {"action": "CREATE_TICKET"})
        assert response.status_code == 200
        assert len(response.json()) == 1

    def test_suspend_endpoint(self, api, admin_user, tech_user):
        response = api(admin_user).post(f"/api/admin/users/{tech_user.pk}/suspend/")
        assert response.status_code == 200
        assert response.json()["status"] == UserStatus.SUSPENDED
        assert api(admin_user).get("/api/admin/users/", {"status": "suspended"}).json()[0]["id"] == tech_user.pk
