# recordhub/classifier.py
from datetime import date
from typing import Iterable, List, Optional, TypeVar, Union

from . import settings
from .schemas import OrderBase, OrderStatus

O = TypeVar("O", bound=OrderBase)

PRIORITY_OVERDUE = 0
PRIORITY_DUE_SOON = 1
PRIORITY_OPEN = 2
PRIORITY_COMPLETED = 3


def _status(status: Union[OrderStatus, str, None]) -> Optional[OrderStatus]:
    if isinstance(status, OrderStatus):
        return status
    try:
        return OrderStatus(status)
    except ValueError:
        return None


def is_overdue(status: Union[OrderStatus, str, None], submission_date: Optional[date], today: date) -> bool:
    if _status(status) is OrderStatus.COMPLETED or submission_date is None:
        return False
    return submission_date < today


def priority_score(order: OrderBase, today: date) -> int:
    if order.status is OrderStatus.COMPLETED:
        return PRIORITY_COMPLETED
    if is_overdue(order.status, order.submission_date, today):
        return PRIORITY_OVERDUE
    if (order.submission_date - today).days <= settings.DUE_SOON_DAYS:
        return PRIORITY_DUE_SOON
    return PRIORITY_OPEN


def sort_by_priority(orders: Iterable[O], today: date) -> List[O]:
    """Overdue first, then due soon, then open, then completed; earliest due date first."""
    return sorted(orders, key=lambda o: (priority_score(o, today), o.submission_date))


def status_badge(status: Union[OrderStatus, str, None], overdue: bool) -> str:
    s = _status(status)
    if overdue and s is not OrderStatus.COMPLETED:
        return "danger"
    if s is OrderStatus.COMPLETED:
        return "success"
    if s is OrderStatus.IN_PROGRESS:
        return "warning"
    if s is OrderStatus.PENDING:
        return "info"
    return "secondary"


def badge_for(order: OrderBase, today: date) -> str:
    return status_badge(order.status, is_overdue(order.status, order.submission_date, today))
