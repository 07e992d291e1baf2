from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from bson import ObjectId


@dataclass
class UpsertUserInput:
    """Create-only fields for upsert by email.

    ``name`` and ``image`` are written only when supplied, and only when the
    user document is first inserted. An existing user is returned untouched.
    """

    email: str
    name: Optional[str] = None
    image: Optional[str] = None

    def insert_fields(self, email: str, ts: float) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "email": email,
            "timestamp": ts,
            "friends": [],
            "chats": [],
            "requests": [],
        }
        if self.name:
            doc["name"] = self.name
        if self.image:
            doc["image"] = self.image
        return doc


@dataclass
class UserRecord:
    id: ObjectId
    email: str
    name: Optional[str] = None
    image: Optional[str] = None
    timestamp: Optional[float] = None
    friends: List[ObjectId] = field(default_factory=list)
    chats: List[ObjectId] = field(default_factory=list)
    requests: List[ObjectId] = field(default_factory=list)

    @classmethod
    def from_doc(cls, doc: dict) -> "UserRecord":
        return cls(
            id=doc["_id"],
            email=doc.get("email", ""),
            name=doc.get("name"),
            image=doc.get("image"),
            timestamp=doc.get("timestamp"),
            friends=list(doc.get("friends") or []),
            chats=list(doc.get("chats") or []),
            requests=list(doc.get("requests") or []),
        )

    def is_friend_of(self, other_id: ObjectId) -> bool:
        return other_id in self.friends

    def has_request_from(self, other_id: ObjectId) -> bool:
        return other_id in self.requests


@dataclass
class MessageRecord:
    id: ObjectId
    text: str
    owner: ObjectId
    timestamp: float
    chat_id: Optional[ObjectId] = None

    @classmethod
    def from_doc(cls, doc: dict, chat_id: Optional[ObjectId] = None) -> "MessageRecord":
        return cls(
            id=doc["_id"],
            text=doc.get("text", ""),
            owner=doc["owner"],
            timestamp=doc.get("timestamp", 0.0),
            chat_id=chat_id,
        )

    def to_doc(self) -> dict:
        return {"_id": self.id, "text": self.text, "owner": self.owner, "timestamp": self.timestamp}


@dataclass
class ChatRecord:
    id: ObjectId
    users: List[ObjectId] = field(default_factory=list)
    messages: List[MessageRecord] = field(default_factory=list)  # newest first

    @classmethod
    def from_doc(cls, doc: dict) -> "ChatRecord":
        chat_id = doc["_id"]
        return cls(
            id=chat_id,
            users=list(doc.get("users") or []),
            messages=[MessageRecord.from_doc(m, chat_id) for m in doc.get("messages") or []],
        )

    def has_member(self, user_id: ObjectId) -> bool:
        return user_id in self.users


@dataclass
class ChatView:
    """A chat with its participants resolved and its messages already sliced."""

    chat: ChatRecord
    users: List[UserRecord]

    @property
    def id(self) -> ObjectId:
        return self.chat.id

    @property
    def messages(self) -> List[MessageRecord]:
        return self.chat.messages


@dataclass
class UserSearchResult:
    user: UserRecord
    is_friend: bool = False
    is_request_sent: bool = False
    has_incoming_request: bool = False
