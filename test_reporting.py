from datetime import date, datetime, timezone

from conftest import NOW, TODAY, make_employee, make_order
from recordhub.reporting import (
    activity_feed, available_seasons, completion_category, completion_rate, dashboard,
    gantt_rows, monthly_trends, season_report, summarize_employees, summarize_orders, with_heartbeat,
)
from recordhub.schemas import Dissertation, NormalOrder


def test_completion_rate_of_nothing_is_zero():
    assert completion_rate(0, 0) == 0.0
    assert summarize_orders([], TODAY).completion_rate == 0.0


def test_completion_category():
    assert completion_category(0.75) == "High"
    assert completion_category(0.74) == "Moderate"


def test_summarize_orders():
    orders = [
        make_order(NormalOrder, status="Completed", costPerPage=275, wordCount=275),
        make_order(NormalOrder, status="Pending", submissionDate="2024-06-01", costPerPage=275, wordCount=550),
        make_order(Dissertation, status="In Progress", wordCount=2750, budget=4250),
    ]
    s = summarize_orders(orders, TODAY)
    assert s.total == 3
    assert s.completed == 1
    assert s.pending == 1
    assert s.in_progress == 1
    assert s.overdue == 1
    assert s.by_type == {"Normal": 2, "Dissertation": 1}
    assert s.budget_by_status["In Progress"] == 4250
    assert s.completion_category == "Moderate"


def test_summarize_employees():
    s = summarize_employees([make_employee(), make_employee(status="Inactive", performanceScore=60)])
    assert (s.total, s.active, s.inactive) == (2, 1, 1)
    assert s.average_performance == 70


def test_trends_empty_input_has_six_zero_buckets():
    buckets = monthly_trends([], TODAY)
    assert [(b.month, b.year) for b in buckets] == [
        ("Jan", 2024), ("Feb", 2024), ("Mar", 2024), ("Apr", 2024), ("May", 2024), ("Jun", 2024),
    ]
    assert all(b.total == 0 for b in buckets)


def test_trends_cross_year_and_ignore_old_orders():
    today = date(2024, 2, 10)
    orders = [
        make_order(submissionDate="2023-12-05", status="Completed"),
        make_order(Dissertation, submissionDate="2024-02-01"),
        make_order(submissionDate="2023-02-01"),  # same month a year earlier
    ]
    buckets = monthly_trends(orders, today)
    assert [(b.month, b.year) for b in buckets][0] == ("Sep", 2023)
    dec = buckets[3]
    assert (dec.month, dec.year, dec.total, dec.completed) == ("Dec", 2023, 1, 1)
    feb = buckets[-1]
    assert feb.total == 1
    assert feb.by_type["Dissertation"] == 1


def test_activity_feed_is_padded_to_five():
    feed = activity_feed([], [make_employee()])
    assert len(feed) == 5
    assert feed[0].kind == "hire"
    assert all(e.kind == "system" for e in feed[1:])


def test_activity_feed_most_recent_first():
    old = make_order(projectName="old", updatedAt="2024-06-01T08:00:00Z")
    new = make_order(projectName="new", updatedAt="2024-06-14T08:00:00+00:00")
    feed = activity_feed([old, new], [make_employee(hireDate="2024-06-05")])
    assert [e.kind for e in feed[:3]] == ["order", "hire", "order"]
    assert feed[0].description.startswith("new")


def test_heartbeat_keeps_length():
    feed = activity_feed([], [make_employee()])
    beat = with_heartbeat(feed, NOW)
    assert len(beat) == 5
    assert beat[0].description.startswith("Heartbeat")
    assert beat[0].timestamp == datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)
    assert beat[1].kind == "hire"


def test_season_report_and_seasons():
    orders = [make_order(season="Spring"), make_order(season="Autumn", status="Completed")]
    assert available_seasons(orders) == ["Spring", "Autumn"]
    report = season_report(orders, "Autumn", TODAY)
    assert report["summary"]["total"] == 1
    assert report["summary"]["completion_category"] == "High"
    assert report["charts"]["type"]["values"] == [1, 0]


def test_gantt_rows():
    rows = gantt_rows([make_order(progress="40")])
    assert rows[0]["start"] == "2024-06-01"
    assert rows[0]["end"] == "2024-06-20"
    assert rows[0]["percentComplete"] == 40


def test_dashboard_shape():
    out = dashboard([make_order()], [make_employee()], TODAY)
    assert out["orders"]["total"] == 1
    assert out["employees"]["active"] == 1
    assert len(out["trends"]) == 6
    assert len(out["activity"]) == 5
    assert out["recentProjects"][0]["projectName"] == "Market study"
