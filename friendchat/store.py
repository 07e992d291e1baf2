from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from . import config
from .errors import NotFound, PersistenceFailure
from .helpers import contains_pattern, normalize_email, now_ts
from .records import ChatRecord, UpsertUserInput, UserRecord

LOGGER = logging.getLogger("friendchat.store")


def connect(uri: str = config.MONGO_URI, db_name: str = config.MONGO_DB) -> "EntityStore":
    client = AsyncIOMotorClient(uri, serverSelectionTimeoutMS=config.SERVER_SELECTION_TIMEOUT_MS)
    return EntityStore(client[db_name], client=client)


class EntityStore:
    """Users and chats (with embedded messages) kept in MongoDB.

    Every write touches a single document. Callers that update two documents
    issue two writes; nothing here spans them.
    """

    def __init__(self, db: AsyncIOMotorDatabase, client: Optional[AsyncIOMotorClient] = None) -> None:
        self.db = db
        self.client = client

    async def init_db(self) -> None:
        # users
        await self.db.users.create_index([("email", ASCENDING)], unique=True)
        # chats by participant and by embedded message id
        await self.db.chats.create_index([("users", ASCENDING)])
        await self.db.chats.create_index([("messages._id", ASCENDING)])
        LOGGER.info("indexes ready")

    async def ping(self) -> bool:
        try:
            await self.db.command("ping")
        except PyMongoError:
            return False
        return True

    def close(self) -> None:
        if self.client is not None:
            self.client.close()

    @contextmanager
    def _writing(self, what: str) -> Iterator[None]:
        try:
            yield
        except PyMongoError as e:
            LOGGER.exception("write failed: %s", what)
            raise PersistenceFailure(f"Error {what}: {e}") from e

    # -----------------------------
    # users
    # -----------------------------
    async def get_user(self, user_id: ObjectId) -> Optional[UserRecord]:
        doc = await self.db.users.find_one({"_id": user_id})
        return UserRecord.from_doc(doc) if doc else None

    async def require_user(self, user_id: ObjectId, what: str = "User") -> UserRecord:
        user = await self.get_user(user_id)
        if user is None:
            raise NotFound(f"{what} not found")
        return user

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        doc = await self.db.users.find_one({"email": normalize_email(email)})
        return UserRecord.from_doc(doc) if doc else None

    async def upsert_user(self, data: UpsertUserInput) -> UserRecord:
        email = normalize_email(data.email)
        with self._writing("upserting user"):
            doc = await self.db.users.find_one_and_update(
                {"email": email},
                {"$setOnInsert": data.insert_fields(email, now_ts())},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        return UserRecord.from_doc(doc)

    async def search_users(self, text: str, exclude_id: ObjectId, limit: int) -> List[UserRecord]:
        pattern = contains_pattern(text)
        cursor = self.db.users.find({
            "$and": [
                {"_id": {"$ne": exclude_id}},
                {"$or": [{"name": pattern}, {"email": pattern}]},
            ]
        }, limit=limit)
        return [UserRecord.from_doc(d) for d in await cursor.to_list(length=limit)]

    async def add_request(self, receiver_id: ObjectId, sender_id: ObjectId) -> UserRecord:
        with self._writing("sending friend request"):
            doc = await self.db.users.find_one_and_update(
                {"_id": receiver_id},
                {"$addToSet": {"requests": sender_id}},
                return_document=ReturnDocument.AFTER,
            )
        if doc is None:
            raise NotFound("User not found")
        return UserRecord.from_doc(doc)

    async def remove_request(self, user_id: ObjectId, requester_id: ObjectId) -> None:
        with self._writing("deleting friend request"):
            await self.db.users.update_one({"_id": user_id}, {"$pull": {"requests": requester_id}})

    async def add_friend(self, user_id: ObjectId, friend_id: ObjectId, clear_request: bool = False) -> None:
        update: dict = {"$addToSet": {"friends": friend_id}}
        if clear_request:
            update["$pull"] = {"requests": friend_id}
        with self._writing("accepting friend request"):
            await self.db.users.update_one({"_id": user_id}, update)

    async def add_chat_to_user(self, user_id: ObjectId, chat_id: ObjectId) -> None:
        with self._writing("creating chat"):
            await self.db.users.update_one({"_id": user_id}, {"$addToSet": {"chats": chat_id}})

    # -----------------------------
    # chats
    # -----------------------------
    async def get_chat(self, chat_id: ObjectId) -> Optional[ChatRecord]:
        doc = await self.db.chats.find_one({"_id": chat_id})
        return ChatRecord.from_doc(doc) if doc else None

    async def require_chat(self, chat_id: ObjectId) -> ChatRecord:
        chat = await self.get_chat(chat_id)
        if chat is None:
            raise NotFound("Chat not found")
        return chat

    async def find_chat_for_pair(self, a: ObjectId, b: ObjectId) -> Optional[ChatRecord]:
        doc = await self.db.chats.find_one({"users": {"$all": [a, b]}})
        return ChatRecord.from_doc(doc) if doc else None

    async def find_chat_by_message(self, message_id: ObjectId) -> Optional[ChatRecord]:
        doc = await self.db.chats.find_one({"messages._id": message_id})
        return ChatRecord.from_doc(doc) if doc else None

    async def insert_chat(self, user_ids: List[ObjectId]) -> ChatRecord:
        doc = {"users": list(user_ids), "messages": []}
        with self._writing("creating chat"):
            res = await self.db.chats.insert_one(doc)
        return ChatRecord(id=res.inserted_id, users=list(user_ids), messages=[])

    async def save_messages(self, chat: ChatRecord) -> None:
        with self._writing("sending message"):
            await self.db.chats.update_one(
                {"_id": chat.id},
                {"$set": {"messages": [m.to_doc() for m in chat.messages]}},
            )
