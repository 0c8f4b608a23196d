import pytest

from conftest import make_order
from recordhub.pricing import (
    apply_payment, apply_pricing, compute_budget, compute_remaining_balance, price_summary,
)
from recordhub.schemas import Dissertation, NormalOrder, PaymentUpdate, parse_number


def test_budget_without_code():
    assert compute_budget(2750, 425, False, 10000) == 4250


def test_budget_with_code():
    assert compute_budget(2750, 425, True, 10000) == 14250


@pytest.mark.parametrize("words,cpp", [(0, 425), (100, 300), (1234, 512.5)])
def test_budget_keeps_fractional_pages(words, cpp):
    assert compute_budget(words, cpp, False, 0) == pytest.approx(words / 275 * cpp)
    assert compute_budget(words, cpp, True, 99) == pytest.approx(words / 275 * cpp + 99)


def test_budget_coerces_junk_to_zero():
    assert compute_budget("abc", None, True, "") == 0
    assert compute_budget(-10, 425, False, 0) == 0


def test_remaining_balance():
    assert compute_remaining_balance(14250, 5000) == 9250
    assert compute_remaining_balance(14250, 20000) == 0
    assert compute_remaining_balance(14250, 14250) == 0


def test_apply_pricing_discards_supplied_budget():
    order = make_order(NormalOrder, budget=1, hasCode=True, codePrice=500)
    priced = apply_pricing(order)
    assert priced.budget == 4750
    assert order.budget == 1


def test_dissertation_defaults_and_balance():
    d = make_order(Dissertation, costPerPage=None, hasCode="Yes", totalPaid=5000)
    assert d.cost_per_page == 425
    assert d.code_price == 10000
    priced = apply_pricing(d)
    assert priced.budget == 14250
    assert priced.remaining_balance == 9250


def test_payment_update_leaves_descriptive_fields():
    d = apply_pricing(make_order(Dissertation, hasCode=True))
    paid = apply_payment(d, PaymentUpdate(words_paid=1000, total_paid=20000, date_paid="2024-06-10"))
    assert paid.budget == d.budget
    assert paid.word_count == d.word_count
    assert paid.remaining_balance == 0
    assert paid.total_paid == 20000
    assert paid.is_fully_paid is False


def test_fully_paid_is_taken_as_given():
    d = apply_pricing(make_order(Dissertation, hasCode=True))
    paid = apply_payment(d, PaymentUpdate.model_validate({"amountPaid": 100, "isFullyPaid": True}))
    assert paid.is_fully_paid is True
    assert paid.remaining_balance == 14150


def test_price_summary():
    out = price_summary(make_order(NormalOrder, hasCode=True, codePrice=500), total_paid=750)
    assert out["pages"] == 10
    assert out["budget"] == 4750
    assert out["remainingBalance"] == 4000


def test_parse_number():
    assert parse_number("1,250") == 1250
    assert parse_number("") == 0
    assert parse_number("abc") == 0
    assert parse_number(True) == 1
    for bad in ("inf", "1e999", float("nan"), float("-inf")):
        with pytest.raises(ValueError):
            parse_number(bad)


def test_budget_treats_non_finite_input_as_zero():
    assert compute_budget("1e999", 425, True, 500) == 500
    assert compute_budget(2750, float("nan"), False, 0) == 0
