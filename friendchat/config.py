import os

from dotenv import load_dotenv

load_dotenv()


def _csv(value: str) -> list:
    # keep order, drop blanks and duplicates
    items = [v.strip() for v in value.split(",") if v.strip()]
    return list(dict.fromkeys(items)) or ["*"]


# -----------------------------
# Server
# -----------------------------
HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "4000"))
GRAPHQL_PATH = os.getenv("GRAPHQL_PATH", "/graphql")
CORS_ORIGINS = _csv(os.getenv("CORS_ORIGINS", "*"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# -----------------------------
# Mongo
# -----------------------------
MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB = os.getenv("MONGO_DB", "friendchat")
SERVER_SELECTION_TIMEOUT_MS = int(os.getenv("SERVER_SELECTION_TIMEOUT_MS", "5000"))

# -----------------------------
# Limits
# -----------------------------
DEFAULT_CHAT_LIMIT = int(os.getenv("DEFAULT_CHAT_LIMIT", "20"))
MAX_PAGE_LIMIT = int(os.getenv("MAX_PAGE_LIMIT", "200"))
MAX_SEARCH_LIMIT = int(os.getenv("MAX_SEARCH_LIMIT", "50"))
MAX_TEXT_LEN = int(os.getenv("MAX_TEXT_LEN", "2000"))
SUBSCRIBER_BACKLOG = int(os.getenv("SUBSCRIBER_BACKLOG", "100"))
