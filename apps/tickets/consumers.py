import json
import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.http import Http404

from apps.cores.actors import Actor
from apps.cores.exceptions import LifecycleError
from apps.tickets.services import chat

logger = logging.getLogger(__name__)


class ChatConsumer(AsyncWebsocketConsumer):
    """
    Live ticket chat. Incoming lines go through the same service (and
    moderation gate) as the HTTP endpoint; delivery to the room happens
    from the post-commit broadcast.
    """

    async def connect(self):
        self.ticket_id = self.scope.get("url_route", {}).get("kwargs", {}).get("ticket_id")

        allowed = await self.is_participant()
        if not allowed:
            logger.info("Chat socket refused for ticket %s", self.ticket_id)
            await self.close()
            return

        self.chat_group_name = chat.chat_group(self.ticket_id)

        await self.channel_layer.group_add(self.chat_group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, close_code):
        if hasattr(self, "chat_group_name"):
            await self.channel_layer.group_discard(self.chat_group_name, self.channel_name)

    async def receive(self, text_data):
        try:
            data = json.loads(text_data)
        except json.JSONDecodeError:
            await self.send_error("Invalid JSON.")
            return

        try:
            await self.post_message(data.get("text", ""))
        except LifecycleError as e:
            await self.send_error(str(e.detail), code=e.default_code)

    async def chat_message(self, event):
        await self.send(text_data=json.dumps(event["message"]))

    async def send_error(self, message, code="error"):
        await self.send(text_data=json.dumps({"error": message, "code": code}))

    @database_sync_to_async
    def is_participant(self):
        user = self.scope.get("user")
        try:
            actor = Actor.from_user(user)
            chat.check_participant(chat.lifecycle.load_ticket(self.ticket_id), actor)
        except (LifecycleError, Http404):
            return False
        return True

    @database_sync_to_async
    def post_message(self, text):
        return chat.post_message(Actor.from_user(self.scope["user"]), self.ticket_id, text)
