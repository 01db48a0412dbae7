from django.urls import path, re_path

from apps.notifications.consumers import NotificationConsumer
from apps.tickets.consumers import ChatConsumer

websocket_urlpatterns = [
    # Chat
    re_path(r"ws/tickets/(?P<ticket_id>\d+)/chat/$", ChatConsumer.as_asgi()),

    # Notifications
    path("ws/notifications/", NotificationConsumer.as_asgi()),
]
