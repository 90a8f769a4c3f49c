"""Defines the 'users' table using the SQLAlchemy ORM."""

import enum

from sqlalchemy import Column, DateTime, Enum as SQLEnum, Integer, String, func

from .db import Base


class UserRole(str, enum.Enum):
    """Access role of a user."""
    ADMIN = "Admin"
    MANAGER = "Manager"
    USER = "User"


class UserStatus(str, enum.Enum):
    """Activity status of a user."""
    ACTIVE = "Active"
    INACTIVE = "Inactive"


def _enum_values(enum_cls):
    # Store the literal values ("Admin"), not the member names ("ADMIN").
    return [member.value for member in enum_cls]


class User(Base):
    """
    SQLAlchemy model for the 'users' table.
    The only entity of the system; the password is kept as a bcrypt hash.
    """
    __tablename__ = "users"
    # AUTOINCREMENT: ids of deleted rows are never handed out again.
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(255), nullable=False)
    username = Column(String(100), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)

    # NULL means the account was created by an admin without a password and cannot log in.
    password_hash = Column(String(255), nullable=True)

    avatar = Column(String(500), nullable=True)
    role = Column(
        SQLEnum(UserRole, values_callable=_enum_values, native_enum=False, create_constraint=True,
                validate_strings=True, name="user_role", length=20),
        nullable=False,
        default=UserRole.USER,
    )
    # DD/MM/YYYY
    birth_date = Column(String(10), nullable=False)
    phone = Column(String(30), nullable=True)
    status = Column(
        SQLEnum(UserStatus, values_callable=_enum_values, native_enum=False, create_constraint=True,
                validate_strings=True, name="user_status", length=20),
        nullable=False,
        default=UserStatus.ACTIVE,
    )

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now())

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"
