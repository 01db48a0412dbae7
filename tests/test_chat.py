import json
from unittest import mock

import pytest

from apps.cores.actors import Actor
from apps.cores.exceptions import AuthorizationError, CollaboratorUnavailable, ValidationError
from apps.moderation import classifier, gate
from apps.moderation.classifier import Verdict
from apps.moderation.gate import MessageRejected
from apps.notifications.models import Notification
from apps.tickets.models import Message
from apps.tickets.services import chat
from apps.tickets.services.categorizer import match_category, suggest_category

pytestmark = pytest.mark.django_db


class TestPostMessage:
    def test_parties_chat(self, assigned_ticket, client_actor, tech_actor, tech_user):
        with mock.patch.object(classifier, "classify", return_value=Verdict(True, "")):
            first = chat.post_message(client_actor, assigned_ticket.pk, "Hi, when can you start?")
            second = chat.post_message(tech_actor, assigned_ticket.pk, "Right after payment.")

        messages = list(chat.list_messages(client_actor, assigned_ticket.pk))
        assert messages == [first, second]
        assert first.sender_role == "client"
        assert Notification.objects.filter(recipient=tech_user, notif_type="message_posted").count() == 1

    def test_unsafe_message_is_not_stored(self, assigned_ticket, client_actor):
        verdict = Verdict(False, "Phone numbers are not allowed.")
        with mock.patch.object(classifier, "classify", return_value=verdict):
            with pytest.raises(MessageRejected) as exc:
                chat.post_message(client_actor, assigned_ticket.pk, "call me on 555-0100")

        assert "Phone numbers" in str(exc.value.detail)
        assert not Message.objects.exists()

    def test_classifier_outage_fails_open(self, assigned_ticket, client_actor):
        with mock.patch.object(classifier, "classify", side_effect=CollaboratorUnavailable("timeout")):
            message = chat.post_message(client_actor, assigned_ticket.pk, "Is the router on?")

        assert Message.objects.filter(pk=message.pk).exists()

    def test_unexpected_classifier_error_fails_open(self, assigned_ticket, client_actor):
        with mock.patch.object(classifier, "classify", side_effect=RuntimeError("boom")):
            message = chat.post_message(client_actor, assigned_ticket.pk, "Is the router on?")

        assert Message.objects.filter(pk=message.pk).exists()

    def test_client_setup_error_fails_open(self, assigned_ticket, client_actor, settings):
        settings.GOOGLE_API_KEY = "key-that-breaks-setup"
        with mock.patch("google.generativeai.configure", side_effect=ValueError("bad key")):
            message = chat.post_message(client_actor, assigned_ticket.pk, "Still waiting")

        assert message.pk is not None

    def test_without_ai_key_messages_pass(self, assigned_ticket, client_actor):
        message = chat.post_message(client_actor, assigned_ticket.pk, "Any update?")
        assert message.pk is not None

    def test_outsider_cannot_chat(self, assigned_ticket, other_client):
        with pytest.raises(AuthorizationError):
            chat.post_message(Actor.from_user(other_client), assigned_ticket.pk, "hello")
        with pytest.raises(AuthorizationError):
            chat.list_messages(Actor.from_user(other_client), assigned_ticket.pk)

    def test_admin_can_join(self, assigned_ticket, admin_actor, client_user, tech_user):
        chat.post_message(admin_actor, assigned_ticket.pk, "Admin here, how can I help?")
        recipients = set(
            Notification.objects.filter(notif_type="message_posted").values_list("recipient_id", flat=True)
        )
        assert recipients == {client_user.pk, tech_user.pk}

    def test_blank_message(self, assigned_ticket, client_actor):
        with pytest.raises(ValidationError):
            chat.post_message(client_actor, assigned_ticket.pk, "   ")


class TestClassifier:
    def test_parses_verdict(self):
        with mock.patch.object(classifier, "ask_gemini", return_value='{"isSafe": false, "reason": "PIX key"}'):
            verdict = classifier.classify("my pix is 123")
        assert verdict == Verdict(False, "PIX key")

    @pytest.mark.parametrize("raw", ["not json", "[]", json.dumps({"reason": "x"}), json.dumps({"isSafe": "no"})])
    def test_malformed_output(self, raw):
        with pytest.raises(CollaboratorUnavailable):
            classifier.parse_verdict(raw)

    def test_gate_admits_on_malformed_output(self):
        with mock.patch.object(classifier, "ask_gemini", return_value="sure, looks fine"):
            gate.admit("hello")


class TestCategorizer:
    def test_match_is_case_insensitive(self):
        assert match_category(' "configuração de rede" ', ["Configuração de Rede", "Outros"]) == "Configuração de Rede"
        assert match_category("Gardening", ["Outros"]) is None

    def test_model_answer_is_used(self):
        with mock.patch("apps.tickets.services.categorizer.ask_gemini", return_value="Remoção de Vírus"):
            assert suggest_category("popups everywhere") == "Remoção de Vírus"

    def test_unknown_answer_falls_back(self):
        with mock.patch("apps.tickets.services.categorizer.ask_gemini", return_value="Plumbing"):
            assert suggest_category("leaky sink") == "Outros"

    def test_blank_description(self):
        assert suggest_category("  ") == "Outros"
