"""Filtering, sorting and saved filter presets for the user list."""

import logging
from datetime import date, datetime
from typing import Iterable, List, Literal, Optional

import pydantic
from pydantic import Field

from user_service.models import UserRole, UserStatus
from user_service.schemas import BIRTH_DATE_FORMAT, CamelModel, UserResponse

from .storage import FILTER_PRESETS_KEY, LocalStorage

logger = logging.getLogger(__name__)

SortField = Literal["name", "email", "birthDate", "role"]
SortOrder = Literal["asc", "desc"]


class FilterOptions(CamelModel):
    """Empty/None values mean 'no constraint'. The date range applies to birthDate, inclusive."""
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    search: str = ""


class SortOptions(CamelModel):
    field: SortField = "name"
    order: SortOrder = "asc"


class FilterPreset(CamelModel):
    name: str = Field(..., min_length=1)
    filters: FilterOptions = Field(default_factory=FilterOptions)
    sort: SortOptions = Field(default_factory=SortOptions)


def parse_birth_date(value: Optional[str]) -> Optional[date]:
    """DD/MM/YYYY -> date; None for missing or malformed values."""
    if not value:
        return None
    try:
        return datetime.strptime(value, BIRTH_DATE_FORMAT).date()
    except ValueError:
        return None


def matches(user: UserResponse, filters: FilterOptions) -> bool:
    if filters.role is not None and user.role != filters.role:
        return False
    if filters.status is not None and user.status != filters.status:
        return False

    if filters.date_from is not None or filters.date_to is not None:
        born = parse_birth_date(user.birth_date)
        if born is None:
            return False
        if filters.date_from is not None and born < filters.date_from:
            return False
        if filters.date_to is not None and born > filters.date_to:
            return False

    needle = filters.search.strip().lower()
    if needle:
        haystack = (user.name, user.username, user.email)
        if not any(needle in value.lower() for value in haystack):
            return False
    return True


def apply_filters(users: Iterable[UserResponse], filters: Optional[FilterOptions] = None) -> List[UserResponse]:
    if filters is None:
        return list(users)
    return [u for u in users if matches(u, filters)]


def _sort_key(field: str):
    if field == "birthDate":
        # Unparseable dates sort first.
        return lambda u: parse_birth_date(u.birth_date) or date.min
    if field == "role":
        return lambda u: u.role.value
    return lambda u: getattr(u, field).lower()


def sort_users(users: Iterable[UserResponse], sort: Optional[SortOptions] = None) -> List[UserResponse]:
    sort = sort or SortOptions()
    return sorted(users, key=_sort_key(sort.field), reverse=sort.order == "desc")


def filter_and_sort(
    users: Iterable[UserResponse],
    filters: Optional[FilterOptions] = None,
    sort: Optional[SortOptions] = None,
) -> List[UserResponse]:
    return sort_users(apply_filters(users, filters), sort)


# --- Presets ---

class PresetStore:
    """Named filter+sort presets, persisted under the `filterPresets` storage key."""

    def __init__(self, storage: LocalStorage):
        self._storage = storage

    def list(self) -> List[FilterPreset]:
        presets = []
        for raw in self._storage.get(FILTER_PRESETS_KEY, []) or []:
            try:
                presets.append(FilterPreset.model_validate(raw))
            except pydantic.ValidationError as e:
                logger.error(f"Skipping unreadable filter preset: {e}")
        return presets

    def _write(self, presets: List[FilterPreset]) -> None:
        self._storage.set(FILTER_PRESETS_KEY, [p.model_dump(by_alias=True, mode="json") for p in presets])

    def save(self, preset: FilterPreset) -> None:
        """Saves a preset, replacing any existing preset with the same name in place."""
        presets = self.list()
        for i, existing in enumerate(presets):
            if existing.name == preset.name:
                presets[i] = preset
                break
        else:
            presets.append(preset)
        self._write(presets)

    def load(self, name: str) -> Optional[FilterPreset]:
        return next((p for p in self.list() if p.name == name), None)

    def delete(self, name: str) -> bool:
        presets = self.list()
        remaining = [p for p in presets if p.name != name]
        if len(remaining) == len(presets):
            return False
        self._write(remaining)
        return True
