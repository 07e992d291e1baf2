from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, List, Optional, Sequence

from bson import ObjectId

from . import config
from .bus import MessageBus, MessageEvent
from .errors import Forbidden, NotFound, NotFriends, ValidationFailure
from .helpers import clamp, now_ts, to_object_id
from .records import ChatRecord, ChatView, MessageRecord, UserRecord
from .store import EntityStore

LOGGER = logging.getLogger("friendchat.chats")


class ChatEngine:
    """Two-person chats between mutual friends, with newest-first messages."""

    def __init__(self, store: EntityStore, bus: MessageBus) -> None:
        self.store = store
        self.bus = bus

    async def _users(self, ids: Sequence[ObjectId]) -> List[UserRecord]:
        users = await asyncio.gather(*(self.store.get_user(i) for i in ids))
        if any(u is None for u in users):
            raise NotFound("One or more users not found")
        return list(users)

    async def _view(self, chat: ChatRecord) -> ChatView:
        return ChatView(chat=chat, users=await self._users(chat.users))

    async def _member_chat(self, chat_id: Any, user_id: Any) -> ChatRecord:
        chat = await self.store.require_chat(to_object_id(chat_id, "Chat"))
        try:
            uid = to_object_id(user_id, "User")
        except NotFound:
            raise Forbidden()
        if not chat.has_member(uid):
            raise Forbidden()
        return chat

    # -----------------------------
    # chats
    # -----------------------------
    async def create_chat(self, user_ids: Sequence[Any]) -> ChatView:
        ids = list(dict.fromkeys(str(u) for u in user_ids))
        if len(user_ids) != 2 or len(ids) != 2:
            raise ValidationFailure("A chat needs exactly two distinct users")

        a, b = await self._users([to_object_id(i, "User") for i in ids])
        if not (a.is_friend_of(b.id) and b.is_friend_of(a.id)):
            raise NotFriends()

        chat = await self.store.find_chat_for_pair(a.id, b.id)
        if chat is None:
            chat = await self.store.insert_chat([a.id, b.id])
            LOGGER.info("chat %s created for %s and %s", chat.id, a.id, b.id)
        # one write per user, re-run for an existing chat to fill in a list
        # left behind by an earlier failure
        for user in (a, b):
            if chat.id not in user.chats:
                await self.store.add_chat_to_user(user.id, chat.id)
        return ChatView(chat=chat, users=[a, b])

    async def get_chat(self, chat_id: Any, user_id: Any, limit: Optional[int] = None, offset: Optional[int] = None) -> ChatView:
        chat = await self._member_chat(chat_id, user_id)
        limit_i = clamp(limit, config.DEFAULT_CHAT_LIMIT, 0, config.MAX_PAGE_LIMIT)
        offset_i = max(0, offset or 0)
        chat.messages = chat.messages[offset_i:offset_i + limit_i]
        return await self._view(chat)

    async def get_chats(self, user_id: Any) -> List[ChatView]:
        user = await self.store.require_user(to_object_id(user_id, "User"))
        chats = await asyncio.gather(*(self.store.get_chat(cid) for cid in user.chats))
        previews = []
        for chat in chats:
            if chat is None:
                continue
            chat.messages = chat.messages[:1]
            previews.append(await self._view(chat))
        return previews

    # -----------------------------
    # messages
    # -----------------------------
    async def send_message(self, chat_id: Any, owner_id: Any, text: Any) -> MessageRecord:
        body = text.strip() if isinstance(text, str) else ""
        if not body:
            raise ValidationFailure("Message text is required")
        if len(body) > config.MAX_TEXT_LEN:
            raise ValidationFailure("Message text is too long")

        chat = await self.store.require_chat(to_object_id(chat_id, "Chat"))
        try:
            owner = to_object_id(owner_id, "User")
        except NotFound:
            raise Forbidden()
        if not chat.has_member(owner):
            raise Forbidden()

        message = MessageRecord(id=ObjectId(), text=body, owner=owner, timestamp=now_ts(), chat_id=chat.id)
        chat.messages.insert(0, message)
        await self.store.save_messages(chat)

        reached = self.bus.publish(MessageEvent(chat_id=chat.id, message=message))
        LOGGER.info("message %s in chat %s delivered live to %d", message.id, chat.id, reached)
        return message

    async def subscribe_messages(self, chat_id: Any, user_id: Any) -> AsyncIterator[MessageRecord]:
        """Live messages of one chat, for one of its participants.

        Membership is checked once, when subscribing.
        """
        chat = await self._member_chat(chat_id, user_id)
        events = self.bus.subscribe(lambda e: e.chat_id == chat.id)
        return _messages(events)


async def _messages(events: AsyncIterator[MessageEvent]) -> AsyncIterator[MessageRecord]:
    try:
        async for event in events:
            yield event.message
    finally:
        await events.aclose()
