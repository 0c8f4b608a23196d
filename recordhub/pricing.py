# recordhub/pricing.py
import logging
from typing import Any, Optional, TypeVar

from . import settings
from .schemas import Dissertation, OrderBase, PaymentUpdate, parse_number

logger = logging.getLogger(__name__)

O = TypeVar("O", bound=OrderBase)


def _as_number(value: Any) -> float:
    """parse_number clamped for arithmetic: negative or non-finite input counts as 0."""
    try:
        n = float(parse_number(value))
    except ValueError:
        return 0.0
    return n if n > 0 else 0.0


# -------------------------
# Budget calculator
# -------------------------
def compute_budget(word_count: Any, cost_per_page: Any, has_code: Any, code_price: Any) -> float:
    """
    budget = (word_count / 275) * cost_per_page (+ code_price once if has_code).
    Fractional pages are kept, nothing is rounded.
    """
    pages = _as_number(word_count) / settings.WORDS_PER_PAGE
    base = pages * _as_number(cost_per_page)
    if has_code:
        return base + _as_number(code_price)
    return base


# -------------------------
# Payment ledger
# -------------------------
def compute_remaining_balance(budget: Any, total_paid: Any) -> float:
    return max(0.0, _as_number(budget) - _as_number(total_paid))


def apply_pricing(order: O) -> O:
    """
    Return a copy of the order with its derived fields recomputed.
    Any budget/remainingBalance supplied by the caller is discarded.
    """
    budget = compute_budget(order.word_count, order.cost_per_page, order.has_code, order.code_price)
    updates = {"budget": budget}
    if isinstance(order, Dissertation):
        updates["remaining_balance"] = compute_remaining_balance(budget, order.total_paid)
    return order.model_copy(update=updates)


def apply_payment(dissertation: Dissertation, payment: PaymentUpdate) -> Dissertation:
    """
    Record a payment on an existing dissertation.

    Only the payment fields change; the stored budget is the basis for the
    balance. isFullyPaid is taken as given, it is not derived from the balance.
    """
    balance = compute_remaining_balance(dissertation.budget, payment.total_paid)
    if payment.is_fully_paid and balance > 0:
        logger.debug("Dissertation %s marked fully paid with balance %.2f outstanding",
                     dissertation.id, balance)
    return dissertation.model_copy(update={
        "words_paid": payment.words_paid,
        "total_paid": payment.total_paid,
        "date_paid": payment.date_paid,
        "is_fully_paid": payment.is_fully_paid,
        "remaining_balance": balance,
    })


def price_summary(order: OrderBase, total_paid: Optional[float] = None) -> dict:
    """Breakdown shown next to the order form."""
    pages = _as_number(order.word_count) / settings.WORDS_PER_PAGE
    base = pages * _as_number(order.cost_per_page)
    code = _as_number(order.code_price) if order.has_code else 0.0
    out = {
        "pages": pages,
        "base": base,
        "code": code,
        "budget": base + code,
    }
    if total_paid is not None:
        out["remainingBalance"] = compute_remaining_balance(base + code, total_paid)
    return out
