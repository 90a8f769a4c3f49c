# tests/test_analytics.py
from datetime import date

from user_client.analytics import (
    build_dashboard,
    key_metrics,
    last_months,
    monthly_trends,
    role_distribution,
    status_distribution,
)
from user_service.models import UserRole, UserStatus

TODAY = date(2024, 3, 20)


def test_last_months_crosses_year_boundary():
    assert last_months(TODAY) == ["2023-10", "2023-11", "2023-12", "2024-01", "2024-02", "2024-03"]


def test_role_distribution(make_user):
    users = [
        make_user(1, role=UserRole.ADMIN),
        make_user(2, role=UserRole.USER),
        make_user(3, role=UserRole.USER),
    ]
    stats = {s.role: (s.count, s.percentage) for s in role_distribution(users)}
    assert stats == {UserRole.ADMIN: (1, 33), UserRole.MANAGER: (0, 0), UserRole.USER: (2, 67)}


def test_status_distribution(make_user):
    users = [make_user(1), make_user(2, status=UserStatus.INACTIVE)]
    stats = status_distribution(users)
    assert (stats.active, stats.inactive) == (1, 1)
    assert stats.active_percentage == stats.inactive_percentage == 50


def test_monthly_trends(make_user):
    users = [
        make_user(1, birth_date="05/03/2024"),
        make_user(2, birth_date="17/03/2024"),
        make_user(3, birth_date="01/02/2024"),
        make_user(4, birth_date="01/02/1990"),  # outside the window
    ]
    trends = {t.month: (t.count, t.height) for t in monthly_trends(users, TODAY)}
    assert trends["2024-03"] == (2, 100.0)
    assert trends["2024-02"] == (1, 50.0)
    assert trends["2023-10"] == (0, 0.0)


def test_key_metrics_growth(make_user):
    users = [
        make_user(1, role=UserRole.ADMIN, birth_date="05/03/2024"),
        make_user(2, status=UserStatus.INACTIVE, birth_date="17/03/2024"),
        make_user(3, birth_date="01/02/2024"),
    ]
    metrics = key_metrics(users, monthly_trends(users, TODAY))
    assert metrics.total_users == 3
    assert metrics.active_users == 2
    assert metrics.admin_count == 1
    assert metrics.recent_growth == 1
    assert metrics.growth_label == "2024-02 (1) → 2024-03 (2)"


def test_empty_collection():
    dashboard = build_dashboard([], TODAY)
    assert all(s.count == 0 and s.percentage == 0 for s in dashboard.roles)
    assert dashboard.statuses.active_percentage == 0
    assert all(t.height == 0 for t in dashboard.trends)
    assert dashboard.metrics.total_users == 0
    assert dashboard.metrics.recent_growth == 0
