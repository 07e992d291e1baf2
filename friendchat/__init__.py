"""friendchat: friends, chats and live messages behind one GraphQL endpoint."""

__version__ = "0.1.0"
