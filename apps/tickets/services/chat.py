import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction

from apps.cores.exceptions import AuthorizationError, ValidationError
from apps.moderation import gate
from apps.notifications.events import DomainEvent, EventKind
from apps.notifications.services.dispatcher import dispatch
from apps.tickets.models import Message

from . import lifecycle

logger = logging.getLogger(__name__)


def chat_group(ticket_id):
    return f"ticket_chat_{ticket_id}"


def check_participant(ticket, actor):
    if actor.is_admin or ticket.is_party(actor.user_id):
        return
    raise AuthorizationError("Only the ticket's client, its technician or an admin can use this chat.")


def list_messages(actor, ticket_id):
    ticket = lifecycle.load_ticket(ticket_id)
    check_participant(ticket, actor)
    return ticket.messages.select_related("sender").order_by("created_at", "id")


def post_message(actor, ticket_id, text):
    """
    Append a chat line after the moderation gate has admitted it.
    Raises MessageRejected when the classifier flags the text.
    """
    text = (text or "").strip()
    if not text:
        raise ValidationError("Message text is required.")

    ticket = lifecycle.load_ticket(ticket_id)
    check_participant(ticket, actor)

    # network call, kept outside the transaction
    gate.admit(text)

    with transaction.atomic():
        message = Message.objects.create(
            ticket=ticket,
            sender_id=actor.user_id,
            sender_role=actor.role,
            text=text,
        )
        dispatch([
            DomainEvent.for_ticket(EventKind.MESSAGE_POSTED, ticket, actor, sender=actor.label),
        ])
        transaction.on_commit(lambda: broadcast_message(message))

    return message


def broadcast_message(message):
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return

    # Lazy import serializer (prevents AppRegistryNotReady)
    from apps.tickets.serializers import MessageSerializer

    try:
        async_to_sync(channel_layer.group_send)(
            chat_group(message.ticket_id),
            {"type": "chat_message", "message": MessageSerializer(message).data},
        )
    except Exception:
        logger.warning("Chat broadcast failed for message %s", message.id, exc_info=True)
