# tests/test_filters.py
from datetime import date

import pytest

from user_client.filters import (
    FilterOptions,
    FilterPreset,
    PresetStore,
    SortOptions,
    apply_filters,
    filter_and_sort,
    sort_users,
)
from user_client.storage import FILTER_PRESETS_KEY, LocalStorage
from user_service.models import UserRole, UserStatus


@pytest.fixture
def users(make_user):
    return [
        make_user(1, name="Carla", role=UserRole.ADMIN, birth_date="15/03/1990"),
        make_user(2, name="alberto", role=UserRole.MANAGER, birth_date="22/07/1985"),
        make_user(3, name="Bea", role=UserRole.USER, status=UserStatus.INACTIVE, birth_date="10/12/1992"),
        make_user(4, name="Dario", role=UserRole.USER, birth_date="01/01/2001"),
    ]


def names(users):
    return [u.name for u in users]


def test_no_filters_keeps_everything(users):
    assert apply_filters(users) == users
    assert apply_filters(users, FilterOptions()) == users


def test_filter_by_role_and_status(users):
    assert names(apply_filters(users, FilterOptions(role=UserRole.USER))) == ["Bea", "Dario"]
    assert names(apply_filters(users, FilterOptions(role="User", status="Active"))) == ["Dario"]


def test_filter_by_birth_date_range(users):
    filters = FilterOptions(date_from=date(1988, 1, 1), date_to=date(1992, 12, 10))
    assert names(apply_filters(users, filters)) == ["Carla", "Bea"]


def test_filter_accepts_iso_strings_from_camel_case_input(users):
    filters = FilterOptions.model_validate({"dateFrom": "2000-01-01"})
    assert names(apply_filters(users, filters)) == ["Dario"]


def test_search_is_case_insensitive(users):
    assert names(apply_filters(users, FilterOptions(search="ALB"))) == ["alberto"]
    assert names(apply_filters(users, FilterOptions(search="user3@"))) == ["Bea"]


def test_sort_by_name_ignores_case(users):
    assert names(sort_users(users)) == ["alberto", "Bea", "Carla", "Dario"]
    assert names(sort_users(users, SortOptions(order="desc"))) == ["Dario", "Carla", "Bea", "alberto"]


def test_sort_by_birth_date_is_chronological(users):
    result = sort_users(users, SortOptions(field="birthDate"))
    assert names(result) == ["alberto", "Carla", "Bea", "Dario"]


def test_sort_by_role(users):
    result = sort_users(users, SortOptions(field="role"))
    assert [u.role for u in result] == [UserRole.ADMIN, UserRole.MANAGER, UserRole.USER, UserRole.USER]


def test_filter_and_sort(users):
    result = filter_and_sort(users, FilterOptions(role=UserRole.USER), SortOptions(field="name", order="desc"))
    assert names(result) == ["Dario", "Bea"]


def test_invalid_sort_field():
    with pytest.raises(ValueError):
        SortOptions(field="phone")


# --- Presets ---

def test_presets_save_load_delete():
    storage = LocalStorage()
    presets = PresetStore(storage)
    admins = FilterPreset(name="Admins", filters=FilterOptions(role=UserRole.ADMIN))
    presets.save(admins)
    presets.save(FilterPreset(name="Newest", sort=SortOptions(field="birthDate", order="desc")))

    assert [p.name for p in presets.list()] == ["Admins", "Newest"]
    assert presets.load("Admins").filters.role == UserRole.ADMIN
    assert storage.get(FILTER_PRESETS_KEY)[0]["filters"]["role"] == "Admin"

    assert presets.delete("Admins") is True
    assert presets.delete("Admins") is False
    assert presets.load("Admins") is None


def test_preset_save_overwrites_by_name():
    presets = PresetStore(LocalStorage())
    presets.save(FilterPreset(name="Mine", filters=FilterOptions(role=UserRole.USER)))
    presets.save(FilterPreset(name="Mine", filters=FilterOptions(role=UserRole.MANAGER)))
    assert len(presets.list()) == 1
    assert presets.load("Mine").filters.role == UserRole.MANAGER
