"""Client side of the user management app: API client, durable storage and the user data store."""

from .api import UsersApiClient
from .auth import AuthSession
from .messages import MessageHistory
from .storage import LocalStorage
from .store import Origin, UserStore

__all__ = ["UsersApiClient", "AuthSession", "LocalStorage", "MessageHistory", "Origin", "UserStore"]
