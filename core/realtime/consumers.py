import json
from urllib.parse import parse_qs

from asgiref.sync import sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from rest_framework.authtoken.models import Token

from core.exceptions import ServiceError
from core.permissions import is_admin
from core.services import messaging


async def _ws_error(ws, code: int, message: str, *, close: bool = False):
    """App codes: 4xxx for client errors, 5xxx for server errors."""
    payload = {"type": "error", "code": code, "message": message}
    try:
        await ws.send(json.dumps(payload))
    finally:
        if close:
            await ws.close(code=code)


@sync_to_async
def _user_for_token(key: str):
    token = Token.objects.select_related("user").filter(key=key).first()
    return token.user if token and token.user.is_active else None


class UpdatesConsumer(AsyncWebsocketConsumer):
    """Broadcast channel for cache refreshes (see ``refresh_caches``)."""
    GROUP = "updates"

    async def connect(self):
        await self.channel_layer.group_add(self.GROUP, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "message": "connected"}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.GROUP, self.channel_name)

    async def broadcast_refresh(self, event):
        # {"type": "broadcast.refresh", "version": int, "ts": "...", "keys": [...]}
        await self.send(json.dumps(event))


class InboxConsumer(AsyncWebsocketConsumer):
    """Per-admin inbox feed. Authenticates with the session or ``?token=<DRF token>``."""

    async def connect(self):
        user = self.scope.get("user")
        if not (user and user.is_authenticated):
            query = parse_qs(self.scope.get("query_string", b"").decode())
            key = (query.get("token") or [""])[0]
            user = await _user_for_token(key) if key else None
        if not is_admin(user):
            await self.close(code=4003)
            return
        self.user = user
        self.group_name = messaging.inbox_group(user.id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        if not text_data:
            return
        try:
            data = json.loads(text_data)
        except json.JSONDecodeError:
            await _ws_error(self, 4000, "invalid_json")
            return
        if not isinstance(data, dict):
            await _ws_error(self, 4001, "invalid_payload")
            return

        kind = data.get("type")
        if kind == "ping":
            await self.send(json.dumps({"type": "pong"}))
        elif kind == "markRead":
            try:
                await sync_to_async(self._mark_read)(int(data.get("messageId")))
            except (TypeError, ValueError):
                await _ws_error(self, 4003, "invalid_message_id")
                return
            except ServiceError as exc:
                await _ws_error(self, 4004, exc.message)
                return
            await self.send(json.dumps({"type": "ack", "ok": True}))
        else:
            await _ws_error(self, 4002, "unsupported_type")

    def _mark_read(self, message_id: int) -> None:
        message = messaging.get_message(self.user, message_id)
        if messaging.is_recipient(message, self.user):
            messaging.mark_read(message)

    async def inbox_message(self, event):
        payload = {k: v for k, v in event.items() if k != "type"}
        await self.send(json.dumps({"type": "message", **payload}))
