"""Error taxonomy shared by the engines and the GraphQL layer.

Engines raise these; mutation resolvers turn them into structured outcomes,
query resolvers let them surface as GraphQL errors.
"""

from typing import Optional


class FriendchatError(Exception):
    code = "error"
    default_message = "Operation failed"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(FriendchatError):
    code = "not_found"
    default_message = "Not found"


class RequestNotFound(NotFound):
    code = "request_not_found"
    default_message = "Friend request not found"


class Forbidden(FriendchatError):
    code = "forbidden"
    default_message = "User not part of the chat"


class Conflict(FriendchatError):
    code = "conflict"
    default_message = "Conflict"


class AlreadyFriends(Conflict):
    code = "already_friends"
    default_message = "Users are already friends"


class AlreadyRequested(Conflict):
    code = "already_requested"
    default_message = "Friend request already sent"


class NotFriends(FriendchatError):
    code = "not_friends"
    default_message = "Users are not friends"


class ValidationFailure(FriendchatError):
    code = "validation_failure"
    default_message = "Invalid input"


class PersistenceFailure(FriendchatError):
    code = "persistence_failure"
    default_message = "Database error"
