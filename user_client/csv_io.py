"""CSV export and import of user records."""

import csv
import io
import logging
import time
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Callable, Iterable, List, Optional, TextIO, Union

from user_service.models import UserRole, UserStatus
from user_service.schemas import UserResponse, validate_birth_date

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ["ID", "Name", "Username", "Email", "Role", "Birth Date", "Phone", "Avatar"]
REQUIRED_COLUMNS = ["Name", "Username", "Email", "Birth Date", "Role"]


@dataclass
class ImportResult:
    success: bool
    users: List[UserResponse] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def default_export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"users_export_{today.isoformat()}.csv"


def _export_row(user: UserResponse) -> dict:
    return {
        "ID": user.id,
        "Name": user.name,
        "Username": user.username,
        "Email": user.email,
        "Role": user.role.value,
        "Birth Date": user.birth_date,
        "Phone": user.phone or "",
        "Avatar": user.avatar or "",
    }


def write_users_csv(users: Iterable[UserResponse], out: TextIO) -> int:
    writer = csv.DictWriter(out, fieldnames=EXPORT_COLUMNS)
    writer.writeheader()
    count = 0
    for user in users:
        writer.writerow(_export_row(user))
        count += 1
    return count


def export_users_to_csv(users: Iterable[UserResponse], path: Union[str, Path, None] = None) -> Path:
    """Writes the users to `path` (default: users_export_<YYYY-MM-DD>.csv) and returns the path."""
    path = Path(path) if path is not None else Path(default_export_filename())
    with open(path, "w", newline="", encoding="utf-8") as f:
        count = write_users_csv(users, f)
    logger.info(f"Exported {count} users to {path}")
    return path


def users_to_csv_string(users: Iterable[UserResponse]) -> str:
    buffer = io.StringIO()
    write_users_csv(users, buffer)
    return buffer.getvalue()


def _timestamp_ids() -> Callable[[], int]:
    base = time.time_ns() // 1_000_000
    counter = iter(range(base, base + 10**9))
    return lambda: next(counter)


def read_users_csv(source: TextIO, id_factory: Optional[Callable[[], int]] = None) -> ImportResult:
    """
    Parses user rows. Rows missing a required column or carrying an unknown role are
    reported as `Row <n>: ...` (n counts data rows from 1) and skipped; valid rows are
    still returned. Every imported user gets a fresh local id and 'Active' status.
    """
    next_id = id_factory or _timestamp_ids()
    users: List[UserResponse] = []
    errors: List[str] = []
    valid_roles = [r.value for r in UserRole]

    try:
        reader = csv.DictReader(source)
        rows = [row for row in reader if any((v or "").strip() for v in row.values() if isinstance(v, str))]
    except csv.Error as e:
        return ImportResult(success=False, errors=[f"Could not parse CSV: {e}"])

    for index, row in enumerate(rows, start=1):
        values = {k.strip(): (v or "").strip() for k, v in row.items() if isinstance(k, str) and isinstance(v, str)}

        if any(not values.get(column) for column in REQUIRED_COLUMNS):
            errors.append(f"Row {index}: Missing required fields ({', '.join(REQUIRED_COLUMNS)})")
            continue
        if values["Role"] not in valid_roles:
            errors.append(f"Row {index}: Invalid role '{values['Role']}'. Must be: {', '.join(valid_roles)}")
            continue
        try:
            validate_birth_date(values["Birth Date"])
        except ValueError as e:
            errors.append(f"Row {index}: {e}")
            continue

        users.append(UserResponse(
            id=next_id(),
            name=values["Name"],
            username=values["Username"],
            email=values["Email"],
            avatar=values.get("Avatar") or "",
            role=UserRole(values["Role"]),
            status=UserStatus.ACTIVE,
            birth_date=values["Birth Date"],
            phone=values.get("Phone") or "",
        ))

    if errors:
        logger.warning(f"CSV import: {len(users)} rows accepted, {len(errors)} rejected.")
    return ImportResult(success=not errors, users=users, errors=errors)


def import_users_from_csv(path: Union[str, Path], id_factory: Optional[Callable[[], int]] = None) -> ImportResult:
    try:
        with open(path, "r", newline="", encoding="utf-8-sig") as f:
            return read_users_csv(f, id_factory)
    except OSError as e:
        logger.error(f"Could not read {path}: {e}")
        return ImportResult(success=False, errors=[str(e)])
