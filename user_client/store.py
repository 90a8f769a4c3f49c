"""
Client data store: one merged, ordered view over locally-created and server-fetched users.

Every record lives once in an id-keyed container, tagged with its origin (local or
remote) and an ordering rank. The three views the UI needs are derived from it:

- ``local_items``: locally created/imported users, most recently added first
  (persisted to client storage);
- ``server_items``: users fetched from the API, in page order;
- ``view``: ``local_items + server_items``.

Because nothing is stored twice, a mutation can never leave the views out of sync.
"""

import enum
import logging
import time
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Union

import pydantic

from user_service.models import UserRole, UserStatus
from user_service.schemas import UserCreate, UserResponse, UserUpdate

from .api import UsersApiClient
from .exceptions import ApiError, FetchInProgressError
from .storage import LOCAL_USERS_KEY, LocalStorage

logger = logging.getLogger(__name__)

User = UserResponse


class Origin(str, enum.Enum):
    LOCAL = "local"
    REMOTE = "remote"


@dataclass
class _Entry:
    user: User
    origin: Origin
    rank: int


def _default_avatar(user_id: int) -> str:
    return f"https://i.pravatar.cc/150?u={user_id}"


class UserStore:
    """
    State holder for the user list screens.

    All operations are synchronous state transitions. `fetch_page` calls must be
    serialized by the caller; the `loading` flag is set while one is in flight and a
    second call raises FetchInProgressError instead of interleaving pages.
    """

    def __init__(self, api: Optional[UsersApiClient], storage: LocalStorage):
        self._api = api
        self._storage = storage
        self._entries: Dict[int, _Entry] = {}
        # Ranks below zero are prepends, zero and above are appends.
        self._front = 0
        self._back = 0
        self._last_local_id = 0
        # dict as an insertion-ordered set
        self._selected: Dict[int, None] = {}

        self.page = 0
        self.has_more = True
        self.loading = False
        self.error: Optional[str] = None

        self._load_persisted()

    # --- Derived views ---

    def _ordered(self, origin: Origin) -> List[User]:
        entries = [e for e in self._entries.values() if e.origin is origin]
        entries.sort(key=lambda e: e.rank)
        return [e.user for e in entries]

    @property
    def local_items(self) -> List[User]:
        return self._ordered(Origin.LOCAL)

    @property
    def server_items(self) -> List[User]:
        return self._ordered(Origin.REMOTE)

    @property
    def view(self) -> List[User]:
        return self.local_items + self.server_items

    def get(self, user_id: int) -> Optional[User]:
        entry = self._entries.get(user_id)
        return entry.user if entry else None

    def origin_of(self, user_id: int) -> Optional[Origin]:
        entry = self._entries.get(user_id)
        return entry.origin if entry else None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, user_id: int) -> bool:
        return user_id in self._entries

    # --- Internal helpers ---

    def _prepend(self, user: User, origin: Origin) -> None:
        self._front -= 1
        self._entries[user.id] = _Entry(user, origin, self._front)

    def _append(self, user: User, origin: Origin) -> None:
        self._entries[user.id] = _Entry(user, origin, self._back)
        self._back += 1

    def _persist_local(self) -> None:
        self._storage.set(
            LOCAL_USERS_KEY,
            [u.model_dump(by_alias=True, mode="json") for u in self.local_items],
        )

    def _load_persisted(self) -> None:
        raw_users = self._storage.get(LOCAL_USERS_KEY, [])
        if not isinstance(raw_users, list):
            logger.error(f"Ignoring persisted '{LOCAL_USERS_KEY}': expected a list.")
            return
        users = []
        for raw in raw_users:
            try:
                users.append(User.model_validate(raw))
            except pydantic.ValidationError as e:
                logger.error(f"Skipping unreadable persisted user: {e}")
        # Stored most-recent-first; prepending in reverse keeps that order.
        for user in reversed(users):
            if user.id not in self._entries:
                self._prepend(user, Origin.LOCAL)
                self._last_local_id = max(self._last_local_id, user.id)

    def _require_api(self) -> UsersApiClient:
        if self._api is None:
            raise RuntimeError("UserStore has no API client configured")
        return self._api

    def next_local_id(self) -> int:
        """Millisecond-timestamp ids, strictly increasing within this store."""
        candidate = max(time.time_ns() // 1_000_000, self._last_local_id + 1)
        while candidate in self._entries:
            candidate += 1
        self._last_local_id = candidate
        return candidate

    # --- Fetching ---

    def fetch_page(self, page: int) -> List[User]:
        """
        Fetches page `page` from the API. Page 1 replaces the server records,
        later pages are appended. Returns the fetched users.
        """
        api = self._require_api()
        if self.loading:
            raise FetchInProgressError(f"Cannot fetch page {page}: a fetch is already in flight")
        if page < 1:
            raise ValueError("page must be greater than or equal to 1")

        self.loading = True
        self.error = None
        try:
            result = api.get_users(page)
        except ApiError as e:
            self.error = str(e) or "Failed to load"
            raise
        finally:
            self.loading = False

        if page == 1:
            for user_id in [i for i, e in self._entries.items() if e.origin is Origin.REMOTE]:
                del self._entries[user_id]
        for user in result.data:
            self._merge_remote(user)

        self.page = page
        self.has_more = result.has_more
        logger.debug(f"Fetched page {page}: {len(result.data)} users, has_more={result.has_more}")
        return list(result.data)

    def _merge_remote(self, user: User) -> None:
        existing = self._entries.get(user.id)
        if existing is None:
            self._append(user, Origin.REMOTE)
        elif existing.origin is Origin.REMOTE:
            # Same page fetched twice: refresh in place instead of appending again.
            existing.user = user
        else:
            logger.warning(f"Server user {user.id} collides with a local user id; keeping the local record.")

    # --- Local records ---

    def add_local(self, user: User) -> None:
        if user.id in self._entries:
            raise ValueError(f"A user with id {user.id} is already in the store")
        self._prepend(user, Origin.LOCAL)
        self._last_local_id = max(self._last_local_id, user.id)
        self._persist_local()

    def create_local(self, data: UserCreate) -> User:
        """Builds a local-only user (fresh id, 'Active') and adds it to the store."""
        user_id = self.next_local_id()
        user = User(
            id=user_id,
            name=data.name,
            username=data.username,
            email=data.email,
            avatar=data.avatar or _default_avatar(user_id),
            role=data.role or UserRole.USER,
            birth_date=data.birth_date,
            phone=data.phone,
            status=UserStatus.ACTIVE,
        )
        self.add_local(user)
        return user

    def import_users(self, users: Iterable[User]) -> int:
        """Bulk prepend of local users, keeping the imported order. All-or-nothing."""
        users = list(users)
        seen = set()
        for user in users:
            if user.id in self._entries or user.id in seen:
                raise ValueError(f"Duplicate user id {user.id} in import")
            seen.add(user.id)

        for user in reversed(users):
            self._prepend(user, Origin.LOCAL)
            self._last_local_id = max(self._last_local_id, user.id)
        if users:
            self._persist_local()
        logger.info(f"Imported {len(users)} local users.")
        return len(users)

    # --- Mutations ---

    def update(self, user: User) -> bool:
        """Replaces the stored record with the same id in place. Returns False if the id is unknown."""
        entry = self._entries.get(user.id)
        if entry is None:
            return False
        entry.user = user
        if entry.origin is Origin.LOCAL:
            self._persist_local()
        return True

    def bulk_delete(self, ids: Iterable[int]) -> int:
        """Removes every matching id (and its selection) in one transition. Returns how many were removed."""
        removed = 0
        local_touched = False
        for user_id in set(ids):
            entry = self._entries.pop(user_id, None)
            self._selected.pop(user_id, None)
            if entry is None:
                continue
            removed += 1
            local_touched = local_touched or entry.origin is Origin.LOCAL
        if local_touched:
            self._persist_local()
        return removed

    def bulk_set_role(self, ids: Iterable[int], role: Union[UserRole, str]) -> int:
        role = UserRole(role)
        changed = 0
        local_touched = False
        for user_id in set(ids):
            entry = self._entries.get(user_id)
            if entry is None:
                continue
            entry.user = entry.user.model_copy(update={"role": role})
            changed += 1
            local_touched = local_touched or entry.origin is Origin.LOCAL
        if local_touched:
            self._persist_local()
        return changed

    def reset(self) -> None:
        """Clears every collection, the selection and the pagination cursor (logout)."""
        self._entries.clear()
        self._selected.clear()
        self._front = 0
        self._back = 0
        self.page = 0
        self.has_more = True
        self.loading = False
        self.error = None
        self._storage.remove(LOCAL_USERS_KEY)

    # --- Server-backed mutations ---

    def create_user(self, data: Union[UserCreate, dict]) -> User:
        """Creates the user on the server and places it at the head of the server records."""
        user = self._require_api().create_user(data)
        self._prepend(user, Origin.REMOTE)
        return user

    def save_user(self, user_id: int, patch: Union[UserUpdate, dict]) -> User:
        """
        Applies a patch. Local records are patched in place; server records go through
        the API first and the returned record replaces the stored one.
        """
        entry = self._entries.get(user_id)
        if entry is not None and entry.origin is Origin.LOCAL:
            if not isinstance(patch, UserUpdate):
                patch = UserUpdate.model_validate(patch)
            changes = patch.changes()
            # Local records have no credentials to change.
            changes.pop("password", None)
            # Revalidated as a whole record: a null required field raises instead of being persisted.
            entry.user = User.model_validate({**entry.user.model_dump(), **changes})
            self._persist_local()
            return entry.user

        user = self._require_api().update_user(user_id, patch)
        if not self.update(user):
            logger.debug(f"Updated user {user_id} is not loaded in the store.")
        return user

    def delete_user(self, user_id: int) -> None:
        """Deletes one user: server records through the API, local records directly."""
        entry = self._entries.get(user_id)
        if entry is None or entry.origin is Origin.REMOTE:
            self._require_api().delete_user(user_id)
        self.bulk_delete([user_id])

    # --- Selection ---

    @property
    def selected_ids(self) -> List[int]:
        return list(self._selected)

    def toggle_selection(self, user_id: int) -> bool:
        """Returns True if the user is selected after the toggle."""
        if user_id in self._selected:
            del self._selected[user_id]
            return False
        self._selected[user_id] = None
        return True

    def select_all(self, ids: Optional[Iterable[int]] = None) -> None:
        ids = [u.id for u in self.view] if ids is None else list(ids)
        self._selected = dict.fromkeys(ids)

    def deselect_all(self) -> None:
        self._selected.clear()
