from __future__ import annotations

import logging
from typing import Any, List, Optional

from bson import ObjectId

from . import config
from .errors import NotFound, ValidationFailure
from .helpers import clamp, safe_str, to_object_id
from .records import MessageRecord, UpsertUserInput, UserRecord, UserSearchResult
from .store import EntityStore

LOGGER = logging.getLogger("friendchat.queries")


class QueryFacade:
    """Read-side lookups plus the create-or-fetch user upsert."""

    def __init__(self, store: EntityStore) -> None:
        self.store = store

    async def upsert_user(self, data: UpsertUserInput) -> UserRecord:
        if not safe_str(data.email, 128):
            raise ValidationFailure("Email is required")
        user = await self.store.upsert_user(data)
        LOGGER.info("upserted user %s", user.id)
        return user

    async def get_user(self, user_id: Any) -> UserRecord:
        return await self.store.require_user(to_object_id(user_id, "User"))

    async def get_user_by_email(self, email: str) -> UserRecord:
        user = await self.store.get_user_by_email(email)
        if user is None:
            raise NotFound("User not found")
        return user

    async def get_user_id(self, email: str) -> ObjectId:
        return (await self.get_user_by_email(email)).id

    async def search_users(self, search: str, limit: Optional[int], current_user_id: Any) -> List[UserSearchResult]:
        current = await self.get_user(current_user_id)
        # blank text matches everyone but the caller
        text = (search or "").strip()
        limit_i = clamp(limit, config.MAX_SEARCH_LIMIT, 1, config.MAX_SEARCH_LIMIT)
        users = await self.store.search_users(text, current.id, limit_i)
        return [
            UserSearchResult(
                user=u,
                is_friend=u.is_friend_of(current.id),
                is_request_sent=u.has_request_from(current.id),
                has_incoming_request=current.has_request_from(u.id),
            )
            for u in users
        ]

    async def get_message(self, message_id: Any) -> MessageRecord:
        mid = to_object_id(message_id, "Message")
        chat = await self.store.find_chat_by_message(mid)
        if chat is not None:
            for m in chat.messages:
                if m.id == mid:
                    return m
        raise NotFound("Message not found")
