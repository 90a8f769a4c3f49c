"""Persistence service: sole owner of the 'users' table."""

import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional, Union

import pydantic
from sqlalchemy import exc, func, select, update

from . import schemas
from .db import Database
from .exceptions import AuthError, DuplicateKeyError, NotFoundError, ValidationError
from .models import User, UserRole, UserStatus
from .seed import DEMO_USERS
from .utils import PasswordHasher

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 4

# Attributes a patch may touch. 'id' is deliberately absent: it is immutable.
UPDATABLE_FIELDS = frozenset({
    "name", "username", "email", "birth_date", "phone", "role", "status", "avatar", "password",
})
NULLABLE_FIELDS = frozenset({"phone", "avatar"})


@dataclass(frozen=True)
class Page:
    """A page of users plus the pagination cursor data."""
    items: List[User]
    total: int
    page: int
    page_size: int
    has_more: bool


def default_avatar() -> str:
    return f"https://i.pravatar.cc/150?u={uuid.uuid4().hex}"


def _duplicate_key_error(error: exc.IntegrityError) -> Optional[DuplicateKeyError]:
    """Returns a DuplicateKeyError when the integrity error is a unique constraint violation."""
    message = str(error.orig)
    if "UNIQUE constraint failed" not in message and "unique" not in message.lower():
        return None
    if "users.username" in message:
        return DuplicateKeyError("Username already exists", field="username")
    if "users.email" in message:
        return DuplicateKeyError("Email already exists", field="email")
    return DuplicateKeyError()


class UserDatabaseService:
    """
    Create/read/update/delete/paginate operations over the users table.

    Storage errors propagate unchanged; unique violations surface as DuplicateKeyError
    and missing rows as NotFoundError.
    """

    def __init__(
        self,
        database: Database,
        hasher: PasswordHasher,
        page_size: int = DEFAULT_PAGE_SIZE,
        seed_demo_data: bool = True,
    ):
        self._db = database
        self._hasher = hasher
        self.page_size = page_size
        self._seed_demo_data = seed_demo_data

    # --- Lifecycle ---

    def initialize(self) -> None:
        """
        Creates the table if it is missing and seeds the demo dataset when it is empty.
        Raises if the database cannot be opened.
        """
        try:
            self._db.check_connection()
            self._db.create_tables()
            logger.info("Database tables verified/created.")
        except exc.SQLAlchemyError as e:
            logger.critical(f"Could not open the database: {e}", exc_info=True)
            raise

        with self._db.session() as db:
            count = db.scalar(select(func.count()).select_from(User))
            if count == 0 and self._seed_demo_data:
                self._seed(db)

    def _seed(self, db) -> None:
        users = []
        for demo in DEMO_USERS:
            fields = dict(demo)
            password = fields.pop("password")
            users.append(User(password_hash=self._hasher.hash(password), **fields))
        db.add_all(users)
        logger.info(f"Database seeded with {len(users)} demo users.")

    def close(self) -> None:
        self._db.dispose()

    # --- Queries ---

    def list_page(self, page: int = 1, page_size: Optional[int] = None) -> Page:
        """Returns page `page` (1-indexed) ordered by ascending id."""
        if page < 1:
            raise ValidationError("page must be greater than or equal to 1")
        size = page_size or self.page_size
        offset = (page - 1) * size

        with self._db.session() as db:
            total = db.scalar(select(func.count()).select_from(User))
            rows = db.scalars(
                select(User).order_by(User.id.asc()).limit(size).offset(offset)
            ).all()

        return Page(
            items=list(rows),
            total=total,
            page=page,
            page_size=size,
            has_more=offset + size < total,
        )

    def get_by_id(self, user_id: int) -> User:
        with self._db.session() as db:
            user = db.get(User, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def find_by_email(self, email: str) -> Optional[User]:
        """Lookup for the authentication path. The returned record carries the password hash."""
        with self._db.session() as db:
            return db.scalars(select(User).where(User.email == email)).first()

    # --- Mutations ---

    def create(self, data: schemas.UserCreate) -> User:
        """Inserts a new user. Role defaults to 'User' and status is always 'Active'."""
        user = User(
            name=data.name,
            username=data.username,
            email=data.email,
            password_hash=self._hasher.hash(data.password) if data.password else None,
            avatar=data.avatar or default_avatar(),
            role=data.role or UserRole.USER,
            birth_date=data.birth_date,
            phone=data.phone,
            status=UserStatus.ACTIVE,
        )
        return self._insert(user)

    def create_with_credentials(self, registration: schemas.RegisterRequest) -> User:
        """Registration path: hashes the plaintext password, then delegates to create."""
        return self.create(
            schemas.UserCreate(
                name=registration.name,
                username=registration.username,
                email=registration.email,
                birth_date=registration.birth_date,
                phone=registration.phone,
                role=UserRole.USER,
                password=registration.password,
            )
        )

    def _insert(self, user: User) -> User:
        try:
            with self._db.session() as db:
                db.add(user)
                db.flush()
                # Loads id and the database-assigned timestamps.
                db.refresh(user)
        except exc.IntegrityError as e:
            duplicate = _duplicate_key_error(e)
            if duplicate is None:
                raise
            logger.warning(f"Insert rejected for username={user.username!r} email={user.email!r}: {duplicate}")
            raise duplicate from e
        logger.info(f"User created with ID: {user.id} ({user.username})")
        return user

    def update(self, user_id: int, patch: Union[schemas.UserUpdate, dict]) -> User:
        """
        Applies only the supplied fields and refreshes updated_at.
        An empty patch returns the current record unchanged.
        """
        changes = self._validated_changes(patch)
        if not changes:
            return self.get_by_id(user_id)

        values = dict(changes)
        if "password" in values:
            values["password_hash"] = self._hasher.hash(values.pop("password"))
        values["updated_at"] = func.now()

        try:
            with self._db.session() as db:
                result = db.execute(
                    update(User)
                    .where(User.id == user_id)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise NotFoundError(f"User {user_id} not found")
                user = db.scalars(select(User).where(User.id == user_id)).one()
        except exc.IntegrityError as e:
            duplicate = _duplicate_key_error(e)
            if duplicate is None:
                raise
            logger.warning(f"Update of user {user_id} rejected: {duplicate}")
            raise duplicate from e

        logger.info(f"User {user_id} updated fields: {', '.join(sorted(changes))}")
        return user

    def _validated_changes(self, patch: Union[schemas.UserUpdate, dict]) -> dict:
        if not isinstance(patch, schemas.UserUpdate):
            try:
                patch = schemas.UserUpdate.model_validate(patch)
            except pydantic.ValidationError as e:
                raise ValidationError(str(e)) from e

        changes = patch.changes()
        changes.pop("id", None)
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")
        for field, value in changes.items():
            if value is None and field not in NULLABLE_FIELDS:
                raise ValidationError(f"{field} cannot be null")
        return changes

    def delete(self, user_id: int) -> User:
        """Deletes the user and returns the record as it was."""
        with self._db.session() as db:
            user = db.get(User, user_id)
            if user is None:
                raise NotFoundError(f"User {user_id} not found")
            db.delete(user)
        logger.info(f"User {user_id} deleted.")
        return user

    # --- Authentication ---

    def authenticate(self, email: str, password: str) -> User:
        user = self.find_by_email(email)
        if user is None or not self._hasher.verify(password, user.password_hash):
            raise AuthError("Invalid credentials")
        return user
