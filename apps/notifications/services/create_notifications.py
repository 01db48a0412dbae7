import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction

from apps.notifications.models import Notification, NotificationLevel

logger = logging.getLogger(__name__)


def notify_user(recipient_id, notif_type, title, message="", level=NotificationLevel.INFO,
                link="", data=None):

    if data is None:
        data = {}

    # Save in DB
    notif = Notification.objects.create(
        recipient_id=recipient_id,
        notif_type=notif_type,
        level=level,
        title=title,
        message=message,
        link=link,
        data=data,
    )

    # Push via WebSocket once the surrounding transaction has committed
    transaction.on_commit(lambda: push_notification(notif))

    return notif


def push_notification(notif):
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return

    try:
        async_to_sync(channel_layer.group_send)(
            f"user_{notif.recipient_id}",
            {
                "type": "send_notification",
                "id": notif.id,
                "title": notif.title,
                "message": notif.message,
                "notif_type": notif.notif_type,
                "level": notif.level,
                "link": notif.link,
                "data": notif.data,
                "created_at": str(notif.created_at),
                "is_read": False,
            }
        )
    except Exception:
        logger.warning("Realtime push failed for notification %s", notif.id, exc_info=True)
