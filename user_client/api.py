"""HTTP client for the user management REST API."""

import logging
import os
from typing import Any, Optional, Union

import httpx

from user_service import schemas

from .exceptions import RequestFailedError, UnauthorizedError, error_for_status
from .storage import AUTH_TOKEN_KEY, CURRENT_USER_KEY, LocalStorage

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = os.getenv("USERS_API_BASE_URL", "http://localhost:3001")
DEFAULT_TIMEOUT = 10.0


def _payload(data: Union[schemas.CamelModel, dict], **dump_options) -> dict:
    if isinstance(data, schemas.CamelModel):
        return data.model_dump(by_alias=True, mode="json", **dump_options)
    return dict(data)


class UsersApiClient:
    """
    Thin wrapper over an `httpx.Client`.

    The stored bearer token is attached to every request. A 401/403 answer clears the
    stored token and current user before the error is raised, so the caller falls back
    to the login view.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        storage: Optional[LocalStorage] = None,
        timeout: float = DEFAULT_TIMEOUT,
        http: Optional[httpx.Client] = None,
    ):
        self.storage = storage if storage is not None else LocalStorage()
        self._owns_http = http is None
        self._http = http or httpx.Client(base_url=base_url, timeout=timeout)

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _auth_headers(self) -> dict:
        token = self.storage.get(AUTH_TOKEN_KEY)
        return {"Authorization": f"Bearer {token}"} if token else {}

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = self._http.request(method, path, headers=self._auth_headers(), **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"{method} {path} timed out: {e}")
            raise RequestFailedError(f"Request to {path} timed out") from e
        except httpx.RequestError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise RequestFailedError(f"Could not reach the API: {e}") from e

        if response.is_success:
            return response.json()

        try:
            body = response.json()
        except ValueError:
            body = None
        detail = body.get("detail") if isinstance(body, dict) else None
        detail = detail or response.text or response.reason_phrase
        error = error_for_status(response.status_code, str(detail))

        if isinstance(error, UnauthorizedError):
            logger.warning(f"{method} {path} rejected with {response.status_code}; clearing stored credentials.")
            self.storage.remove(AUTH_TOKEN_KEY, CURRENT_USER_KEY)
        else:
            logger.warning(f"{method} {path} failed with {response.status_code}: {detail}")
        raise error

    # --- Users ---

    def get_users(self, page: int = 1) -> schemas.UserPage:
        return schemas.UserPage.model_validate(self._request("GET", "/api/users", params={"page": page}))

    def get_user(self, user_id: int) -> schemas.UserResponse:
        return schemas.UserResponse.model_validate(self._request("GET", f"/api/users/{user_id}"))

    def create_user(self, data: Union[schemas.UserCreate, dict]) -> schemas.UserResponse:
        body = _payload(data, exclude_none=True)
        return schemas.UserResponse.model_validate(self._request("POST", "/api/users", json=body))

    def update_user(self, user_id: int, patch: Union[schemas.UserUpdate, dict]) -> schemas.UserResponse:
        body = _payload(patch, exclude_unset=True)
        return schemas.UserResponse.model_validate(self._request("PUT", f"/api/users/{user_id}", json=body))

    def delete_user(self, user_id: int) -> schemas.DeleteResponse:
        return schemas.DeleteResponse.model_validate(self._request("DELETE", f"/api/users/{user_id}"))

    # --- Authentication ---

    def login(self, email: str, password: str) -> schemas.AuthResponse:
        data = self._request("POST", "/api/auth/login", json={"email": email, "password": password})
        return schemas.AuthResponse.model_validate(data)

    def register(self, data: Union[schemas.RegisterRequest, dict]) -> schemas.AuthResponse:
        body = _payload(data, exclude_none=True)
        return schemas.AuthResponse.model_validate(self._request("POST", "/api/auth/register", json=body))

    def me(self) -> schemas.UserResponse:
        return schemas.UserResponse.model_validate(self._request("GET", "/api/auth/me"))

    def health(self) -> dict:
        return self._request("GET", "/health")
