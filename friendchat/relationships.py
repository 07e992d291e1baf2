from __future__ import annotations

import asyncio
import logging
from typing import Any, List

from bson import ObjectId

from .errors import AlreadyFriends, AlreadyRequested, NotFound, RequestNotFound, ValidationFailure
from .helpers import to_object_id
from .records import UserRecord
from .store import EntityStore

LOGGER = logging.getLogger("friendchat.relationships")


class RelationshipEngine:
    """Friend-request lifecycle.

    A pending request lives only in the receiver's ``requests`` list. Accepting
    it writes both users' ``friends`` lists, one document at a time.
    """

    def __init__(self, store: EntityStore) -> None:
        self.store = store

    async def _pair(self, a: Any, b: Any) -> List[UserRecord]:
        a_id = to_object_id(a, "User")
        b_id = to_object_id(b, "User")
        users = await asyncio.gather(self.store.get_user(a_id), self.store.get_user(b_id))
        if any(u is None for u in users):
            raise NotFound("One or both users not found")
        return list(users)

    # -----------------------------
    # transitions
    # -----------------------------
    async def send_friend_request(self, sender_id: Any, receiver_id: Any) -> UserRecord:
        if str(sender_id) == str(receiver_id):
            raise ValidationFailure("Cannot send a friend request to yourself")

        sender, receiver = await self._pair(sender_id, receiver_id)

        if receiver.is_friend_of(sender.id):
            raise AlreadyFriends()
        if receiver.has_request_from(sender.id):
            raise AlreadyRequested()

        updated = await self.store.add_request(receiver.id, sender.id)
        LOGGER.info("friend request %s -> %s", sender.id, receiver.id)
        return updated

    async def accept_friend_request(self, request_id: Any, user_id: Any) -> None:
        user, requester = await self._pair(user_id, request_id)

        if not user.has_request_from(requester.id):
            raise RequestNotFound()
        if user.is_friend_of(requester.id) and requester.is_friend_of(user.id):
            raise AlreadyFriends()

        # two separate writes; the request is cleared by the last one so a
        # failed accept can be re-issued
        await self.store.add_friend(requester.id, user.id)
        await self.store.add_friend(user.id, requester.id, clear_request=True)
        LOGGER.info("friend request accepted %s <-> %s", requester.id, user.id)

    async def delete_friend_request(self, request_id: Any, user_id: Any) -> None:
        user, requester = await self._pair(user_id, request_id)

        if not user.has_request_from(requester.id):
            raise RequestNotFound()

        await self.store.remove_request(user.id, requester.id)
        LOGGER.info("friend request declined %s -x-> %s", requester.id, user.id)

    # -----------------------------
    # reads
    # -----------------------------
    async def _resolve_all(self, ids: List[ObjectId]) -> List[UserRecord]:
        users = await asyncio.gather(*(self.store.get_user(i) for i in ids))
        missing = [str(i) for i, u in zip(ids, users) if u is None]
        if missing:
            raise NotFound(f"User not found: {', '.join(missing)}")
        return list(users)

    async def get_requests(self, user_id: Any) -> List[UserRecord]:
        user = await self.store.require_user(to_object_id(user_id, "User"))
        return await self._resolve_all(user.requests)

    async def get_friends(self, user_id: Any) -> List[UserRecord]:
        user = await self.store.require_user(to_object_id(user_id, "User"))
        return await self._resolve_all(user.friends)
