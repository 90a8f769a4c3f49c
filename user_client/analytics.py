"""Dashboard figures computed from the users currently held by the client."""

from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence

from user_service.models import UserRole, UserStatus
from user_service.schemas import UserResponse

TREND_MONTHS = 6


@dataclass(frozen=True)
class RoleStat:
    role: UserRole
    count: int
    percentage: int


@dataclass(frozen=True)
class StatusStats:
    active: int
    inactive: int
    active_percentage: int
    inactive_percentage: int


@dataclass(frozen=True)
class MonthCount:
    month: str  # YYYY-MM
    count: int
    height: float  # percent of the busiest month


@dataclass(frozen=True)
class KeyMetrics:
    total_users: int
    active_users: int
    admin_count: int
    recent_growth: int
    growth_label: str


@dataclass(frozen=True)
class Dashboard:
    roles: List[RoleStat]
    statuses: StatusStats
    trends: List[MonthCount]
    metrics: KeyMetrics


def _percent(count: int, total: int) -> int:
    # Half-up rounding; an empty collection counts as 1 to avoid dividing by zero.
    return int(count * 100 / max(total, 1) + 0.5)


def role_distribution(users: Sequence[UserResponse]) -> List[RoleStat]:
    stats = []
    for role in UserRole:
        count = sum(1 for u in users if u.role == role)
        stats.append(RoleStat(role, count, _percent(count, len(users))))
    return stats


def status_distribution(users: Sequence[UserResponse]) -> StatusStats:
    active = sum(1 for u in users if u.status == UserStatus.ACTIVE)
    inactive = sum(1 for u in users if u.status == UserStatus.INACTIVE)
    return StatusStats(active, inactive, _percent(active, len(users)), _percent(inactive, len(users)))


def last_months(today: Optional[date] = None, count: int = TREND_MONTHS) -> List[str]:
    """Month keys (YYYY-MM), oldest first, ending with the month of `today`."""
    today = today or date.today()
    keys = []
    for back in range(count - 1, -1, -1):
        year, month = divmod(today.year * 12 + today.month - 1 - back, 12)
        keys.append(f"{year:04d}-{month + 1:02d}")
    return keys


def monthly_trends(users: Sequence[UserResponse], today: Optional[date] = None) -> List[MonthCount]:
    """
    Users per month over the last six months. There is no registration date on the
    client, so the month/year of birthDate (DD/MM/YYYY) is used.
    """
    months = last_months(today)
    counts = dict.fromkeys(months, 0)
    for user in users:
        parts = (user.birth_date or "").split("/")
        if len(parts) != 3:
            continue
        key = f"{parts[2]}-{parts[1]}"
        if key in counts:
            counts[key] += 1

    busiest = max(max(counts.values()), 1)
    return [MonthCount(m, counts[m], counts[m] / busiest * 100) for m in months]


def key_metrics(users: Sequence[UserResponse], trends: Optional[List[MonthCount]] = None) -> KeyMetrics:
    trends = monthly_trends(users) if trends is None else trends

    if len(trends) >= 2:
        prev, last = trends[-2], trends[-1]
        growth = last.count - prev.count
        label = f"{prev.month} ({prev.count}) → {last.month} ({last.count})"
    elif len(trends) == 1:
        growth = trends[0].count
        label = f"First month: {trends[0].month}"
    else:
        growth, label = 0, "No data"

    return KeyMetrics(
        total_users=len(users),
        active_users=sum(1 for u in users if u.status == UserStatus.ACTIVE),
        admin_count=sum(1 for u in users if u.role == UserRole.ADMIN),
        recent_growth=growth,
        growth_label=label,
    )


def build_dashboard(users: Sequence[UserResponse], today: Optional[date] = None) -> Dashboard:
    users = list(users)
    trends = monthly_trends(users, today)
    return Dashboard(
        roles=role_distribution(users),
        statuses=status_distribution(users),
        trends=trends,
        metrics=key_metrics(users, trends),
    )
