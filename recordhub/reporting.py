# recordhub/reporting.py
"""
Dashboard and report aggregates.

Every function here is pure: callers load the records and pass `today`/`now`
explicitly so results are reproducible.
"""
import calendar
import logging
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from . import settings
from .classifier import is_overdue
from .schemas import Employee, EmployeeStatus, OrderBase, OrderStatus, OrderType

logger = logging.getLogger(__name__)

_SYSTEM_MESSAGES = (
    "System check completed",
    "Records synchronized",
    "Database backup verified",
    "No new activity",
    "Reports refreshed",
)


@dataclass
class OrderSummary:
    total: int = 0
    completed: int = 0
    pending: int = 0
    in_progress: int = 0
    overdue: int = 0
    by_status: Dict[str, int] = field(default_factory=dict)
    by_type: Dict[str, int] = field(default_factory=dict)
    total_budget: float = 0.0
    budget_by_type: Dict[str, float] = field(default_factory=dict)
    budget_by_status: Dict[str, float] = field(default_factory=dict)
    completion_rate: float = 0.0
    completion_category: str = "Moderate"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class EmployeeSummary:
    total: int = 0
    active: int = 0
    inactive: int = 0
    average_performance: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TrendBucket:
    month: str
    year: int
    total: int = 0
    completed: int = 0
    by_type: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ActivityEntry:
    kind: str  # order | hire | system
    description: str
    timestamp: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "description": self.description,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }


# -------------------------
# Rates
# -------------------------
def completion_rate(completed: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return completed / total


def completion_category(rate: float) -> str:
    return "High" if rate >= settings.HIGH_COMPLETION_RATE else "Moderate"


# -------------------------
# Order / employee rollups
# -------------------------
def summarize_orders(orders: Iterable[OrderBase], today: date) -> OrderSummary:
    s = OrderSummary(
        by_status={st.value: 0 for st in OrderStatus},
        by_type={t.value: 0 for t in OrderType},
        budget_by_type={t.value: 0.0 for t in OrderType},
        budget_by_status={st.value: 0.0 for st in OrderStatus},
    )
    for o in orders:
        s.total += 1
        budget = float(o.budget or 0.0)
        s.total_budget += budget
        s.by_status[o.status.value] = s.by_status.get(o.status.value, 0) + 1
        s.by_type[o.type.value] = s.by_type.get(o.type.value, 0) + 1
        s.budget_by_type[o.type.value] = s.budget_by_type.get(o.type.value, 0.0) + budget
        s.budget_by_status[o.status.value] = s.budget_by_status.get(o.status.value, 0.0) + budget
        if is_overdue(o.status, o.submission_date, today):
            s.overdue += 1
    s.completed = s.by_status[OrderStatus.COMPLETED.value]
    s.pending = s.by_status[OrderStatus.PENDING.value]
    s.in_progress = s.by_status[OrderStatus.IN_PROGRESS.value]
    s.completion_rate = completion_rate(s.completed, s.total)
    s.completion_category = completion_category(s.completion_rate)
    return s


def summarize_employees(employees: Iterable[Employee]) -> EmployeeSummary:
    s = EmployeeSummary()
    score_total = 0.0
    for e in employees:
        s.total += 1
        if e.status is EmployeeStatus.ACTIVE:
            s.active += 1
        else:
            s.inactive += 1
        score_total += float(e.performance_score or 0.0)
    s.average_performance = score_total / s.total if s.total else 0.0
    return s


# -------------------------
# Trends
# -------------------------
def _shift_month(year: int, month: int, delta: int):
    idx = year * 12 + (month - 1) + delta
    return idx // 12, idx % 12 + 1


def monthly_trends(orders: Iterable[OrderBase], today: date, months: int = settings.TREND_MONTHS) -> List[TrendBucket]:
    """
    Fixed window of `months` buckets ending with the current month, oldest first.
    Orders are bucketed by (month, year) of their submission date.
    """
    buckets: List[TrendBucket] = []
    index: Dict[tuple, TrendBucket] = {}
    for delta in range(-(months - 1), 1):
        y, m = _shift_month(today.year, today.month, delta)
        b = TrendBucket(month=calendar.month_abbr[m], year=y, by_type={t.value: 0 for t in OrderType})
        buckets.append(b)
        index[(y, m)] = b

    for o in orders:
        b = index.get((o.submission_date.year, o.submission_date.month))
        if b is None:
            continue
        b.total += 1
        if o.status is OrderStatus.COMPLETED:
            b.completed += 1
        b.by_type[o.type.value] = b.by_type.get(o.type.value, 0) + 1
    return buckets


# -------------------------
# Activity feed
# -------------------------
def _utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _pad(entries: List[ActivityEntry], size: int) -> List[ActivityEntry]:
    i = 0
    while len(entries) < size:
        entries.append(ActivityEntry("system", _SYSTEM_MESSAGES[i % len(_SYSTEM_MESSAGES)]))
        i += 1
    return entries


def activity_feed(orders: Iterable[OrderBase], employees: Iterable[Employee],
                  size: int = settings.ACTIVITY_FEED_SIZE) -> List[ActivityEntry]:
    """
    Most recent first: order status changes (by updatedAt) merged with hires
    (by hireDate). Always returns exactly `size` entries.
    """
    events: List[ActivityEntry] = []
    for o in orders:
        if o.updated_at is None:
            continue
        events.append(ActivityEntry(
            "order",
            f"{o.project_name} ({o.supervisor_name}) is {o.status.value}",
            _utc(o.updated_at),
        ))
    for e in employees:
        events.append(ActivityEntry(
            "hire",
            f"{e.employee_name} joined as {e.position} ({e.department})",
            datetime.combine(e.hire_date, time.min, tzinfo=timezone.utc),
        ))
    events.sort(key=lambda ev: ev.timestamp, reverse=True)
    return _pad(events[:size], size)


def with_heartbeat(feed: Sequence[ActivityEntry], now: datetime,
                   size: int = settings.ACTIVITY_FEED_SIZE) -> List[ActivityEntry]:
    """Prepend a synthetic heartbeat entry, dropping the oldest to keep the length fixed."""
    beat = ActivityEntry("system", "Heartbeat: all services operational", _utc(now))
    return _pad([beat] + list(feed)[: size - 1], size)


# -------------------------
# Reports
# -------------------------
def available_seasons(orders: Iterable[OrderBase]) -> List[str]:
    return sorted({o.season for o in orders if o.season}, reverse=True)


def season_report(orders: Iterable[OrderBase], season: str, today: date) -> Dict[str, Any]:
    cohort = [o for o in orders if o.season == season]
    summary = summarize_orders(cohort, today)
    return {
        "season": season,
        "summary": summary.to_dict(),
        "charts": distribution_series(summary),
    }


def distribution_series(summary: OrderSummary) -> Dict[str, Dict[str, list]]:
    """Label/value series for the bar and pie charts."""
    return {
        "type": {
            "labels": ["Normal Projects", "Dissertation Projects"],
            "values": [summary.by_type.get(OrderType.NORMAL.value, 0),
                       summary.by_type.get(OrderType.DISSERTATION.value, 0)],
        },
        "status": {
            "labels": [st.value for st in OrderStatus],
            "values": [summary.by_status.get(st.value, 0) for st in OrderStatus],
        },
        "budget": {
            "labels": [st.value for st in OrderStatus],
            "values": [summary.budget_by_status.get(st.value, 0.0) for st in OrderStatus],
        },
    }


def gantt_rows(orders: Iterable[OrderBase]) -> List[Dict[str, Any]]:
    return [
        {
            "id": o.id,
            "name": o.project_name,
            "start": o.order_date.isoformat(),
            "end": o.submission_date.isoformat(),
            "percentComplete": o.progress,
        }
        for o in orders
    ]


def dashboard(orders: Sequence[OrderBase], employees: Sequence[Employee], today: date,
              per_page: int = settings.DEFAULT_PAGE_SIZE) -> Dict[str, Any]:
    recent_employees = sorted(employees, key=lambda e: e.hire_date, reverse=True)[:per_page]
    recent_orders = sorted(orders, key=lambda o: o.submission_date, reverse=True)[:per_page]
    return {
        "employees": summarize_employees(employees).to_dict(),
        "orders": summarize_orders(orders, today).to_dict(),
        "trends": [b.to_dict() for b in monthly_trends(orders, today)],
        "activity": [a.to_dict() for a in activity_feed(orders, employees)],
        "recentEmployees": [e.to_document() | {"id": e.id} for e in recent_employees],
        "recentProjects": [o.to_document() | {"id": o.id} for o in recent_orders],
    }
