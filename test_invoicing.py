import pytest

from conftest import NOW, make_order, run
from recordhub.errors import EmptyCohortError
from recordhub.invoicing import InvoiceService, build_invoice, invoice_filters, select_cohort
from recordhub.schemas import Dissertation, NormalOrder, OrderType, Project


def test_build_invoice_sums_cohort():
    cohort = [make_order(budget=b) for b in (1000, 2000, 3000)]
    invoice = build_invoice(cohort, "A", "Spring", now=NOW)
    assert invoice.total_amount == 6000
    assert invoice.project_count == 3
    assert invoice.is_paid is False


def test_empty_cohort_raises():
    with pytest.raises(EmptyCohortError):
        build_invoice([], "A", "Spring")


def test_select_cohort_filters_writer_season_and_type():
    orders = [
        make_order(supervisorName="A", season="Spring"),
        make_order(Dissertation, supervisorName="A", season="Spring"),
        make_order(supervisorName="B", season="Spring"),
        make_order(supervisorName="A", season="Autumn"),
    ]
    assert len(select_cohort(orders, "A", "Spring")) == 2
    assert len(select_cohort(orders, "A", "Spring", OrderType.DISSERTATION)) == 1


def test_invoice_filters():
    orders = [make_order(supervisorName="B", season="Spring"), make_order(supervisorName="A", season="Autumn")]
    assert invoice_filters(orders) == {"supervisors": ["A", "B"], "seasons": ["Autumn", "Spring"]}


def _seed(repos):
    # wordCount 275 at cpp c gives a budget of exactly c
    run(repos.normal_orders.create(make_order(NormalOrder, wordCount=275, costPerPage=1000)))
    run(repos.projects.create(make_order(Project, wordCount=275, costPerPage=2000)))
    run(repos.dissertations.create(make_order(Dissertation, wordCount=275, costPerPage=3000)))
    run(repos.normal_orders.create(make_order(NormalOrder, supervisorName="B", wordCount=275)))


def test_generate_persists_snapshot(repos):
    _seed(repos)
    service = InvoiceService(repos)
    invoice, cohort = run(service.generate("A", "Spring", now=NOW))
    assert invoice.id
    assert invoice.total_amount == 6000
    assert invoice.project_count == 3
    assert len(cohort) == 3

    stored = run(repos.invoices.all())
    assert [i.id for i in stored] == [invoice.id]


def test_generate_empty_cohort_persists_nothing(repos):
    _seed(repos)
    service = InvoiceService(repos)
    with pytest.raises(EmptyCohortError):
        run(service.generate("A", "Winter", now=NOW))
    assert run(repos.invoices.all()) == []


def test_toggle_and_delete_leave_orders_alone(repos):
    _seed(repos)
    service = InvoiceService(repos)
    invoice, _ = run(service.generate("A", "Spring", now=NOW))
    before = [o.to_document() for o in run(repos.all_orders())]

    assert run(service.toggle_paid(invoice.id)).is_paid is True
    assert run(service.toggle_paid(invoice.id)).is_paid is False
    assert run(service.set_paid(invoice.id, True)).is_paid is True
    run(service.delete(invoice.id))

    assert run(repos.invoices.all()) == []
    assert [o.to_document() for o in run(repos.all_orders())] == before


def test_invoice_total_survives_later_order_edits(repos):
    _seed(repos)
    service = InvoiceService(repos)
    invoice, cohort = run(service.generate("A", "Spring", now=NOW))

    order = next(o for o in cohort if isinstance(o, NormalOrder))
    run(repos.normal_orders.update(order.id, order.model_copy(update={"word_count": 2750})))
    assert run(repos.normal_orders.get(order.id)).budget == 10000

    stored = run(repos.invoices.get(invoice.id))
    assert stored.total_amount == 6000
    assert stored.project_count == 3
    assert sum(o.budget for o in run(service.preview("A", "Spring"))) == 15000
