# tests/test_csv_io.py
import io
from datetime import date

from user_client.csv_io import (
    EXPORT_COLUMNS,
    default_export_filename,
    export_users_to_csv,
    import_users_from_csv,
    read_users_csv,
    users_to_csv_string,
)
from user_service.models import UserRole, UserStatus


def counter(start=5000):
    ids = iter(range(start, start + 100))
    return lambda: next(ids)


def test_default_filename():
    assert default_export_filename(date(2024, 5, 17)) == "users_export_2024-05-17.csv"


def test_export_columns(make_user):
    text = users_to_csv_string([make_user(1, name="Ann, Jr.", phone="+1 2")])
    lines = text.splitlines()
    assert lines[0] == ",".join(EXPORT_COLUMNS)
    assert lines[1].startswith('1,"Ann, Jr.",user1,user1@example.com,User,01/01/2000,+1 2,')


def test_export_to_file_and_import_back(tmp_path, make_user):
    path = export_users_to_csv([make_user(1), make_user(2, role=UserRole.ADMIN)], tmp_path / "out.csv")
    result = import_users_from_csv(path, id_factory=counter())

    assert result.success
    assert [u.username for u in result.users] == ["user1", "user2"]
    # Imported records never keep the exported ids.
    assert [u.id for u in result.users] == [5000, 5001]
    assert result.users[1].role == UserRole.ADMIN


def test_import_reports_bad_rows_and_keeps_good_ones():
    source = io.StringIO(
        "Name,Username,Email,Birth Date,Role,Phone\n"
        "Good One,good1,good1@example.com,01/02/1990,Manager,+1\n"
        "No Email,noemail,,01/02/1990,User,\n"
        "Bad Role,badrole,bad@example.com,01/02/1990,Owner,\n"
        "Bad Date,baddate,date@example.com,1990-02-01,User,\n"
    )
    result = read_users_csv(source, id_factory=counter())

    assert not result.success
    assert [u.username for u in result.users] == ["good1"]
    good = result.users[0]
    assert good.status == UserStatus.ACTIVE
    assert good.role == UserRole.MANAGER
    assert good.phone == "+1"
    assert result.errors[0] == "Row 2: Missing required fields (Name, Username, Email, Birth Date, Role)"
    assert result.errors[1] == "Row 3: Invalid role 'Owner'. Must be: Admin, Manager, User"
    assert result.errors[2].startswith("Row 4: ")


def test_import_skips_blank_lines():
    source = io.StringIO(
        "Name,Username,Email,Birth Date,Role\n"
        "\n"
        "A,a,a@example.com,01/01/2000,User\n"
        ",,,,\n"
    )
    result = read_users_csv(source, id_factory=counter())
    assert result.success
    assert len(result.users) == 1


def test_import_missing_file(tmp_path):
    result = import_users_from_csv(tmp_path / "nope.csv")
    assert not result.success
    assert result.errors
