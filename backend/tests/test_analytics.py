from datetime import datetime, timedelta

from crm.services import analytics

NOW = datetime(2026, 3, 15, 12, 0, 0)


def row(days_ago=0, **fields):
    fields.setdefault("created_at", NOW - timedelta(days=days_ago))
    return fields


def test_conversion_rate():
    leads = [row(status="Converted"), row(status="New"), row(status="New")]
    assert analytics.conversion_rate(leads) == 33.33
    assert analytics.conversion_rate([]) == 0.0


def test_count_by_sorted_by_count():
    leads = [row(status="New"), row(status="Qualified"), row(status="Qualified")]
    assert analytics.count_by(leads, "status") == [
        {"status": "Qualified", "count": 2},
        {"status": "New", "count": 1},
    ]


def test_paid_revenue_ignores_other_statuses():
    payments = [
        row(status="Paid", total_amount=100),
        row(status="Pending", total_amount=1000),
        row(status="Refunded", total_amount=50),
        row(status="Paid", total_amount=25.5),
    ]
    assert analytics.paid_revenue(payments) == 125.5


def test_daily_counts_window():
    leads = [row(0), row(0), row(2), row(10)]
    out = analytics.daily_counts(leads, analytics.since(7, now=NOW))
    assert out == [
        {"date": "2026-03-13", "count": 1},
        {"date": "2026-03-15", "count": 2},
    ]


def test_monthly_revenue():
    payments = [
        row(0, status="Paid", total_amount=10),
        row(40, status="Paid", total_amount=5),
        row(41, status="Failed", total_amount=99),
    ]
    out = analytics.monthly_revenue(payments, analytics.months_ago(12, now=NOW))
    assert out == [{"date": "2026-02", "total": 5.0}, {"date": "2026-03", "total": 10.0}]


def test_months_ago_wraps_year():
    assert analytics.months_ago(12, now=NOW) == datetime(2025, 3, 15, 12, 0, 0)
    assert analytics.months_ago(4, now=datetime(2026, 1, 31)) == datetime(2025, 9, 28)


def test_recent_newest_first_and_limited():
    rows = [row(1, id=1), row(0, id=2), row(3, id=3), row(40, id=4)]
    out = analytics.recent(rows, analytics.since(30, now=NOW), limit=2)
    assert [r["id"] for r in out] == [2, 1]


def test_csr_performance():
    csrs = [{"id": 1, "name": "A", "email": "a@x.com"}, {"id": 2, "name": "B", "email": "b@x.com"}]
    leads = [row(created_by_id=1, status="Converted"), row(created_by_id=1, status="New")]
    projects = [row(created_by_id=2)]
    payments = [row(created_by_id=2, status="Paid", total_amount=300)]

    out = analytics.csr_performance(csrs, leads, projects, payments)
    assert [d["id"] for d in out] == [2, 1]
    assert out[1]["total_leads"] == 2
    assert out[1]["conversion_rate"] == 50.0
    assert out[0]["total_revenue"] == 300
    assert out[0]["total_projects"] == 1


def test_leads_per_agent_skips_unknown_owners():
    agents = {1: {"name": "A", "email": "a@x.com"}}
    leads = [
        row(created_by_id=1, status="Converted", source="Website"),
        row(created_by_id=1, status="New", source="Website"),
        row(created_by_id=None, status="New", source="Referral"),
        row(created_by_id=7, status="New", source="Referral"),
    ]

    per_agent = analytics.leads_per_agent(leads, agents)
    assert per_agent == [
        {
            "agent_id": 1,
            "agent_name": "A",
            "agent_email": "a@x.com",
            "total_leads": 2,
            "converted_leads": 1,
            "conversion_rate": 50.0,
        }
    ]

    by_source = analytics.leads_per_agent_by(leads, agents, "source", "category")
    assert by_source[0]["breakdown"] == [{"category": "Website", "count": 2}]


def test_leads_per_agent_daily():
    agents = {1: {"name": "A"}}
    leads = [row(0, created_by_id=1), row(1, created_by_id=1), row(45, created_by_id=1)]
    out = analytics.leads_per_agent_daily(leads, agents, analytics.since(30, now=NOW))
    assert out[0]["total_leads"] == 2
    assert [d["date"] for d in out[0]["daily_data"]] == ["2026-03-14", "2026-03-15"]
