import logging
from typing import AsyncGenerator, List, Optional

import strawberry
from strawberry.types import Info

from .errors import FriendchatError, NotFound
from .records import ChatView, MessageRecord, UpsertUserInput, UserRecord, UserSearchResult
from .services import Services

LOGGER = logging.getLogger("friendchat.schema")

MESSAGE_SENT = "Message sent successfully"


def _services(info: Info) -> Services:
    return info.context["services"]


def _ids(values) -> List[strawberry.ID]:
    return [strawberry.ID(str(v)) for v in values]


# -----------------------------
# output types
# -----------------------------
@strawberry.type
class Message:
    id: strawberry.ID
    text: str
    owner: strawberry.ID
    timestamp: Optional[float] = None
    chat_id: Optional[strawberry.ID] = None

    @classmethod
    def from_record(cls, m: MessageRecord) -> "Message":
        return cls(
            id=strawberry.ID(str(m.id)),
            text=m.text,
            owner=strawberry.ID(str(m.owner)),
            timestamp=m.timestamp,
            chat_id=strawberry.ID(str(m.chat_id)) if m.chat_id else None,
        )


@strawberry.type
class User:
    id: strawberry.ID
    email: str
    name: Optional[str] = None
    image: Optional[str] = None
    timestamp: Optional[float] = None
    friends: List[strawberry.ID] = strawberry.field(default_factory=list)
    chats: List[strawberry.ID] = strawberry.field(default_factory=list)
    requests: List[strawberry.ID] = strawberry.field(default_factory=list)
    is_friend: Optional[bool] = None
    is_request_sent: Optional[bool] = None
    has_incoming_request: Optional[bool] = None

    @classmethod
    def from_record(cls, u: UserRecord) -> "User":
        return cls(
            id=strawberry.ID(str(u.id)),
            email=u.email,
            name=u.name,
            image=u.image,
            timestamp=u.timestamp,
            friends=_ids(u.friends),
            chats=_ids(u.chats),
            requests=_ids(u.requests),
        )

    @classmethod
    def from_search(cls, r: UserSearchResult) -> "User":
        user = cls.from_record(r.user)
        user.is_friend = r.is_friend
        user.is_request_sent = r.is_request_sent
        user.has_incoming_request = r.has_incoming_request
        return user


@strawberry.type
class Chat:
    id: strawberry.ID
    users: List[User]
    messages: List[Message]

    @classmethod
    def from_view(cls, view: ChatView) -> "Chat":
        return cls(
            id=strawberry.ID(str(view.id)),
            users=[User.from_record(u) for u in view.users],
            messages=[Message.from_record(m) for m in view.messages],
        )


@strawberry.type
class UserResponse:
    user: Optional[User] = None
    error_message: Optional[str] = None


@strawberry.type
class UserIdResponse:
    user_id: Optional[strawberry.ID] = None
    error: Optional[str] = None


@strawberry.type
class StatusResponse:
    success: bool
    message: str


@strawberry.type
class ChatResponse:
    chat: Optional[Chat] = None
    error: Optional[str] = None


# -----------------------------
# inputs
# -----------------------------
@strawberry.input
class UserInput:
    email: str
    name: Optional[str] = None
    image: Optional[str] = None


@strawberry.input
class SendMessageInput:
    chat_id: strawberry.ID
    owner_id: strawberry.ID
    text: str


@strawberry.input
class GetChatInput:
    user_id: strawberry.ID
    chat_id: strawberry.ID


# -----------------------------
# operations
# -----------------------------
@strawberry.type
class Query:
    @strawberry.field
    async def get_user_id(self, info: Info, email: str) -> UserIdResponse:
        try:
            user_id = await _services(info).queries.get_user_id(email)
        except NotFound as e:
            return UserIdResponse(error=e.message)
        return UserIdResponse(user_id=strawberry.ID(str(user_id)))

    @strawberry.field
    async def get_user_by_email(self, info: Info, email: str) -> User:
        return User.from_record(await _services(info).queries.get_user_by_email(email))

    @strawberry.field
    async def get_user_by_search(self, info: Info, search_string: str, limit: int, current_user_id: strawberry.ID) -> List[User]:
        results = await _services(info).queries.search_users(search_string, limit, current_user_id)
        return [User.from_search(r) for r in results]

    @strawberry.field
    async def get_chat(self, info: Info, input: GetChatInput, limit: Optional[int] = None, offset: Optional[int] = None) -> Chat:
        view = await _services(info).chats.get_chat(input.chat_id, input.user_id, limit, offset)
        return Chat.from_view(view)

    @strawberry.field
    async def get_message(self, info: Info, id: strawberry.ID) -> Message:
        return Message.from_record(await _services(info).queries.get_message(id))

    @strawberry.field
    async def get_chats(self, info: Info, user_id: strawberry.ID) -> List[Chat]:
        return [Chat.from_view(v) for v in await _services(info).chats.get_chats(user_id)]

    @strawberry.field
    async def get_requests(self, info: Info, user_id: strawberry.ID) -> List[User]:
        return [User.from_record(u) for u in await _services(info).relationships.get_requests(user_id)]

    @strawberry.field
    async def get_friends(self, info: Info, user_id: strawberry.ID) -> List[User]:
        return [User.from_record(u) for u in await _services(info).relationships.get_friends(user_id)]


@strawberry.type
class Mutation:
    @strawberry.mutation
    async def upsert_user(self, info: Info, input: UserInput) -> UserResponse:
        data = UpsertUserInput(email=input.email, name=input.name, image=input.image)
        try:
            user = await _services(info).queries.upsert_user(data)
        except FriendchatError as e:
            LOGGER.warning("upsertUser rejected: %s", e.code)
            return UserResponse(error_message=e.message)
        return UserResponse(user=User.from_record(user))

    @strawberry.mutation
    async def send_friend_request(self, info: Info, sender_id: strawberry.ID, receiver_id: strawberry.ID) -> UserResponse:
        try:
            receiver = await _services(info).relationships.send_friend_request(sender_id, receiver_id)
        except FriendchatError as e:
            LOGGER.warning("sendFriendRequest rejected: %s", e.code)
            return UserResponse(error_message=e.message)
        return UserResponse(user=User.from_record(receiver))

    @strawberry.mutation
    async def accept_friend_request(self, info: Info, request_id: strawberry.ID, user_id: strawberry.ID) -> StatusResponse:
        try:
            await _services(info).relationships.accept_friend_request(request_id, user_id)
        except FriendchatError as e:
            LOGGER.warning("acceptFriendRequest rejected: %s", e.code)
            return StatusResponse(success=False, message=e.message)
        return StatusResponse(success=True, message="Friend request accepted")

    @strawberry.mutation
    async def delete_friend_request(self, info: Info, request_id: strawberry.ID, user_id: strawberry.ID) -> StatusResponse:
        try:
            await _services(info).relationships.delete_friend_request(request_id, user_id)
        except FriendchatError as e:
            LOGGER.warning("deleteFriendRequest rejected: %s", e.code)
            return StatusResponse(success=False, message=e.message)
        return StatusResponse(success=True, message="Friend request deleted")

    @strawberry.mutation
    async def create_chat(self, info: Info, user_ids: List[strawberry.ID]) -> ChatResponse:
        try:
            view = await _services(info).chats.create_chat(user_ids)
        except FriendchatError as e:
            LOGGER.warning("createChat rejected: %s", e.code)
            return ChatResponse(error=e.message)
        return ChatResponse(chat=Chat.from_view(view))

    @strawberry.mutation
    async def send_message(self, info: Info, input: SendMessageInput) -> str:
        try:
            await _services(info).chats.send_message(input.chat_id, input.owner_id, input.text)
        except FriendchatError as e:
            LOGGER.warning("sendMessage rejected: %s", e.code)
            return e.message
        return MESSAGE_SENT


@strawberry.type
class Subscription:
    @strawberry.subscription
    async def message_added(self, info: Info, chat_id: strawberry.ID, user_id: strawberry.ID) -> AsyncGenerator[Message, None]:
        messages = await _services(info).chats.subscribe_messages(chat_id, user_id)
        try:
            async for m in messages:
                yield Message.from_record(m)
        finally:
            await messages.aclose()


schema = strawberry.Schema(query=Query, mutation=Mutation, subscription=Subscription)
