"""Client-side authentication state: token + current user, kept in durable storage."""

import logging
from typing import Optional, Union

import pydantic

from user_service.models import UserRole
from user_service.schemas import AuthResponse, RegisterRequest, UserResponse

from .api import UsersApiClient
from .exceptions import ApiError
from .storage import AUTH_TOKEN_KEY, CURRENT_USER_KEY, LocalStorage
from .store import UserStore

logger = logging.getLogger(__name__)


class AuthSession:
    def __init__(self, api: UsersApiClient, storage: LocalStorage, store: Optional[UserStore] = None):
        self._api = api
        self._storage = storage
        self._store = store
        self._user: Optional[UserResponse] = None

    @property
    def user(self) -> Optional[UserResponse]:
        return self._user

    @property
    def token(self) -> Optional[str]:
        return self._storage.get(AUTH_TOKEN_KEY)

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None and self.token is not None

    @property
    def role(self) -> Optional[UserRole]:
        return self._user.role if self._user else None

    def _remember(self, auth: AuthResponse) -> UserResponse:
        self._storage.set(AUTH_TOKEN_KEY, auth.token)
        self._storage.set(CURRENT_USER_KEY, auth.user.model_dump(by_alias=True, mode="json"))
        self._user = auth.user
        return auth.user

    def login(self, email: str, password: str) -> UserResponse:
        auth = self._api.login(email, password)
        logger.info(f"Logged in as {auth.user.email}")
        return self._remember(auth)

    def register(self, data: Union[RegisterRequest, dict]) -> UserResponse:
        auth = self._api.register(data)
        logger.info(f"Registered and logged in as {auth.user.email}")
        return self._remember(auth)

    def load_stored(self) -> Optional[UserResponse]:
        """
        Restores a previous session. The stored token is checked against /api/auth/me;
        any failure clears the stored credentials and leaves the session logged out.
        """
        if self.token is None:
            return None

        cached = self._storage.get(CURRENT_USER_KEY)
        if cached is not None:
            try:
                self._user = UserResponse.model_validate(cached)
            except pydantic.ValidationError as e:
                logger.warning(f"Discarding unreadable cached user: {e}")

        try:
            user = self._api.me()
        except ApiError as e:
            logger.warning(f"Stored session is no longer valid: {e}")
            self._clear()
            return None

        self._storage.set(CURRENT_USER_KEY, user.model_dump(by_alias=True, mode="json"))
        self._user = user
        return user

    def _clear(self) -> None:
        self._storage.remove(AUTH_TOKEN_KEY, CURRENT_USER_KEY)
        self._user = None

    def logout(self) -> None:
        self._clear()
        if self._store is not None:
            self._store.reset()
        logger.info("Logged out.")
