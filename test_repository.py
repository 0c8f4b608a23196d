import asyncio

import pytest

from conftest import TODAY, make_employee, make_order, run
from recordhub.errors import NotFoundError, ValidationError
from recordhub.invoicing import InvoiceService
from recordhub.repository import Repositories, in_date_range, matches_search, paginate, sort_records, sort_rows
from recordhub.schemas import Dissertation, ListQuery, NormalOrder, PaymentUpdate
from recordhub.store import LocalStore


def test_validate_reports_missing_fields(repos):
    with pytest.raises(ValidationError) as exc:
        repos.normal_orders.validate({"projectName": "  ", "orderDate": "2024-06-01"})
    fields = {e["field"] for e in exc.value.details["errors"]}
    assert {"projectName", "submissionDate", "supervisorName", "season"} <= fields


def test_legacy_cpp_key_is_accepted(repos):
    order = repos.dissertations.validate({
        "projectName": "Thesis", "orderDate": "2024-06-01", "submissionDate": "2024-07-01",
        "supervisorName": "A", "season": "Spring", "cpp": 300,
    })
    assert order.cost_per_page == 300
    assert order.to_document()["costPerPage"] == 300


def test_create_recomputes_budget_and_stamps(repos, store):
    created = run(repos.normal_orders.create(make_order(NormalOrder, budget=1, hasCode=True, codePrice=500)))
    assert created.id
    raw = run(store.get("normalOrders", created.id))
    assert raw["budget"] == 4750
    assert raw["type"] == "Normal"
    assert raw["updatedAt"]


def test_update_is_full_overwrite(repos):
    created = run(repos.normal_orders.create(make_order(NormalOrder)))
    edited = make_order(NormalOrder, projectName="Renamed", status="Completed", wordCount=550)
    run(repos.normal_orders.update(created.id, edited))
    got = run(repos.normal_orders.get(created.id))
    assert got.project_name == "Renamed"
    assert got.status.value == "Completed"
    assert got.budget == 850


def test_missing_documents(repos):
    with pytest.raises(NotFoundError):
        run(repos.employees.get("nope"))
    with pytest.raises(NotFoundError):
        run(repos.employees.update("nope", make_employee()))
    with pytest.raises(NotFoundError):
        run(repos.employees.delete("nope"))


def test_invalid_stored_documents_are_skipped(repos, store):
    run(store.set("employees", "bad", {"hireDate": "2024-01-01", "employeeName": ""}))
    run(repos.employees.create(make_employee()))
    assert len(run(repos.employees.all())) == 1


def test_payment_update_only_touches_payment_fields(repos, store):
    created = run(repos.dissertations.create(make_order(Dissertation, hasCode=True)))
    updated = run(repos.dissertations.update_payment(
        created.id, PaymentUpdate(words_paid=500, total_paid=5000, date_paid="2024-06-12")))
    assert updated.remaining_balance == 9250
    raw = run(store.get("dissertations", created.id))
    assert raw["budget"] == 14250
    assert raw["projectName"] == "Market study"
    assert raw["datePaid"] == "2024-06-12"
    assert raw["isFullyPaid"] is False


def test_payment_update_rejects_plain_orders(repos):
    created = run(repos.normal_orders.create(make_order(NormalOrder)))
    with pytest.raises(ValidationError):
        run(repos.normal_orders.update_payment(created.id, PaymentUpdate(total_paid=1)))


def test_list_defaults_to_priority_order(repos):
    run(repos.normal_orders.create(make_order(NormalOrder, projectName="done", status="Completed")))
    run(repos.normal_orders.create(make_order(NormalOrder, projectName="late", submissionDate="2024-06-01")))
    run(repos.normal_orders.create(make_order(NormalOrder, projectName="open", submissionDate="2024-08-01")))
    page = run(repos.normal_orders.list(ListQuery(), today=TODAY))
    assert [o.project_name for o in page.items] == ["late", "open", "done"]


def test_list_search_status_and_pagination(repos):
    for i in range(7):
        run(repos.employees.create(make_employee(employeeName=f"Writer {i}", hireDate=f"2024-0{i + 1}-01")))
    run(repos.employees.create(make_employee(employeeName="Editor", department="Editing", position="Editor", status="Inactive")))

    page = run(repos.employees.list(ListQuery(search="writer", per_page=5, page=2)))
    assert page.total == 7
    assert page.total_pages == 2
    assert len(page.items) == 2

    inactive = run(repos.employees.list(ListQuery(status="Inactive")))
    assert [e.employee_name for e in inactive.items] == ["Editor"]

    in_range = run(repos.employees.list(ListQuery(start="2024-02-01", end="2024-03-31", sort="employeeName")))
    assert [e.employee_name for e in in_range.items] == ["Writer 1", "Writer 2"]


def test_sort_records_puts_empty_values_last():
    a = make_order(NormalOrder, projectName="b")
    b = make_order(Dissertation, projectName="A", datePaid="2024-06-01")
    c = make_order(Dissertation, projectName="c")
    assert [r.project_name for r in sort_records([c, a, b], "projectName")] == ["A", "b", "c"]
    assert sort_records([c, b], "datePaid", "desc")[-1] is c
    with pytest.raises(ValidationError):
        sort_records([a], "nonsense")


def test_helpers():
    order = make_order(NormalOrder, season="Spring")
    assert matches_search(order, ("season",), "spr")
    assert not matches_search(order, ("season",), "aut")
    assert in_date_range(None, None, None)
    assert not in_date_range(None, TODAY, None)
    page = paginate(list(range(11)), 3, 5)
    assert page.items == [10]
    assert page.total_pages == 3


class RecordingStore(LocalStore):
    def __init__(self):
        super().__init__()
        self.queries = []

    async def query(self, collection, where=None, order_by=None):
        self.queries.append((collection, where, order_by))
        return await super().query(collection, where=where, order_by=order_by)


def test_filtered_reads_never_pair_filter_with_order():
    store = RecordingStore()
    repos = Repositories(store)
    run(repos.dissertations.create(make_order(Dissertation, submissionDate="2024-06-20")))
    run(repos.dissertations.create(make_order(Dissertation, submissionDate="2024-07-20")))
    run(repos.dissertations.create(make_order(Dissertation, supervisorName="B")))

    got = run(repos.dissertations.all(where=("supervisorName", "A")))
    assert [str(d.submission_date) for d in got] == ["2024-07-20", "2024-06-20"]

    run(InvoiceService(repos).generate("A", "Spring"))
    run(repos.normal_orders.list(ListQuery(status="Completed")))
    filtered = [q for q in store.queries if q[1] is not None]
    assert filtered
    assert all(order_by is None for _, _, order_by in filtered)


def test_sort_rows_keeps_documents_without_the_key():
    rows = [("a", {"d": "2024-01-01"}), ("b", {}), ("c", {"d": "2024-03-01"})]
    assert [r[0] for r in sort_rows(rows, ("d", "desc"))] == ["c", "a", "b"]
    assert sort_rows(rows, None) is rows


@pytest.mark.parametrize("raw,stored", [
    ("InProgress", "In Progress"), ("in-progress", "In Progress"), (" completed ", "Completed"),
    ("active", "Active"), ("", None), ("Archived", "Archived"),
])
def test_list_status_is_normalised(raw, stored):
    assert ListQuery(status=raw).status == stored


def test_status_filter_matches_stored_spelling(repos):
    run(repos.normal_orders.create(make_order(NormalOrder, status="InProgress")))
    run(repos.normal_orders.create(make_order(NormalOrder, status="Pending")))
    page = run(repos.normal_orders.list(ListQuery(status="inprogress"), today=TODAY))
    assert [o.status.value for o in page.items] == ["In Progress"]


def test_local_store_reads_run_off_the_event_loop(store, monkeypatch):
    calls = []
    real = asyncio.to_thread

    async def spy(func, *args, **kwargs):
        calls.append(func.__name__)
        return await real(func, *args, **kwargs)

    monkeypatch.setattr(asyncio, "to_thread", spy)
    run(store.set("employees", "e1", {"hireDate": "2024-01-01"}))
    run(store.get("employees", "e1"))
    run(store.query("employees"))
    assert calls == ["_set", "_get", "_snapshot"]
