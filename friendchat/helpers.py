import re
import time
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId

from .errors import NotFound


def now_ts() -> float:
    return time.time()


def safe_str(v: Any, max_len: int = 256) -> Optional[str]:
    if not isinstance(v, str):
        return None
    s = v.strip()
    if not s or len(s) > max_len:
        return None
    return s


def normalize_email(email: str) -> str:
    return email.strip().lower()


def to_object_id(value: Any, what: str = "Id") -> ObjectId:
    """Parse an id coming from the API. Ids that cannot parse never resolve."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise NotFound(f"{what} not found")


def clamp(value: Optional[int], default: int, low: int, high: int) -> int:
    if value is None:
        return default
    try:
        v = int(value)
    except (TypeError, ValueError):
        return default
    return max(low, min(v, high))


def contains_pattern(text: str) -> dict:
    # case-insensitive substring match, user text taken literally
    return {"$regex": re.escape(text), "$options": "i"}
