import logging
from urllib.parse import parse_qs

from channels.middleware import BaseMiddleware
from django.db import close_old_connections

logger = logging.getLogger(__name__)


class JWTAuthMiddleware(BaseMiddleware):
    """Resolve `scope["user"]` for websockets from a `?token=<access>` query param."""

    async def __call__(self, scope, receive, send):
        # Lazy imports to avoid AppRegistryNotReady
        from django.contrib.auth import get_user_model
        from django.contrib.auth.models import AnonymousUser
        from rest_framework_simplejwt.exceptions import TokenError
        from rest_framework_simplejwt.tokens import AccessToken

        User = get_user_model()
        close_old_connections()

        query_string = parse_qs(scope.get("query_string", b"").decode())
        token = query_string.get("token")
        scope["user"] = AnonymousUser()

        if token:
            try:
                access_token = AccessToken(token[0])
                scope["user"] = await User.objects.aget(id=access_token["user_id"])
            except (TokenError, User.DoesNotExist) as e:
                logger.info("Websocket JWT rejected: %s", e)

        return await super().__call__(scope, receive, send)
