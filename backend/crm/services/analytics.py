"""
Group-by / reduce helpers behind the dashboard and /stats endpoints.

They work on any sequence of rows (ORM objects or dicts) that the caller has
already scoped, so the same code serves the admin view (everything) and the
CSR view (own rows only).
"""

from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from crm.core.database import utcnow

PAID = "Paid"
CONVERTED = "Converted"


def field_of(row: Any, name: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(name)
    return getattr(row, name, None)


def group_by(rows: Iterable[Any], key: Callable[[Any], Any]) -> "OrderedDict[Any, List[Any]]":
    groups: "OrderedDict[Any, List[Any]]" = OrderedDict()
    for row in rows:
        groups.setdefault(key(row), []).append(row)
    return groups


def sum_of(rows: Iterable[Any], name: str) -> float:
    return float(sum(field_of(r, name) or 0 for r in rows))


def since(days: int, now: Optional[datetime] = None) -> datetime:
    return (now or utcnow()) - timedelta(days=days)


def months_ago(months: int, now: Optional[datetime] = None) -> datetime:
    now = now or utcnow()
    year, month = divmod(now.month - 1 - months, 12)
    day = min(now.day, 28)
    return now.replace(year=now.year + year, month=month + 1, day=day)


def created_since(rows: Iterable[Any], start: datetime) -> List[Any]:
    return [r for r in rows if field_of(r, "created_at") and field_of(r, "created_at") >= start]


# ---------- COUNTS ----------

def count_by(rows: Iterable[Any], name: str) -> List[Dict[str, Any]]:
    groups = group_by(rows, lambda r: field_of(r, name))
    out = [{name: k, "count": len(v)} for k, v in groups.items()]
    return sorted(out, key=lambda d: (-d["count"], str(d[name])))


def count_and_sum_by(rows: Iterable[Any], name: str, value: str) -> List[Dict[str, Any]]:
    groups = group_by(rows, lambda r: field_of(r, name))
    out = [
        {name: k, "count": len(v), "total_value": sum_of(v, value)}
        for k, v in groups.items()
    ]
    return sorted(out, key=lambda d: (-d["count"], str(d[name])))


def paid_revenue(payments: Iterable[Any]) -> float:
    return sum_of((p for p in payments if field_of(p, "status") == PAID), "total_amount")


def conversion_rate(leads: Sequence[Any]) -> float:
    if not leads:
        return 0.0
    converted = sum(1 for lead in leads if field_of(lead, "status") == CONVERTED)
    return round(converted / len(leads) * 100, 2)


# ---------- TIME SERIES ----------

def series(
    rows: Iterable[Any],
    start: datetime,
    fmt: str,
    value: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Bucket rows created at/after `start` by `created_at.strftime(fmt)`.

    Without `value` each bucket is a count; with it, a sum of that field.
    """
    groups = group_by(created_since(rows, start), lambda r: field_of(r, "created_at").strftime(fmt))
    out = []
    for bucket in sorted(groups):
        if value is None:
            out.append({"date": bucket, "count": len(groups[bucket])})
        else:
            out.append({"date": bucket, "total": sum_of(groups[bucket], value)})
    return out


def daily_counts(rows: Iterable[Any], start: datetime) -> List[Dict[str, Any]]:
    return series(rows, start, "%Y-%m-%d")


def daily_revenue(payments: Iterable[Any], start: datetime) -> List[Dict[str, Any]]:
    paid = [p for p in payments if field_of(p, "status") == PAID]
    return series(paid, start, "%Y-%m-%d", value="total_amount")


def monthly_revenue(payments: Iterable[Any], start: datetime) -> List[Dict[str, Any]]:
    paid = [p for p in payments if field_of(p, "status") == PAID]
    return series(paid, start, "%Y-%m", value="total_amount")


def recent(rows: Iterable[Any], start: datetime, limit: int) -> List[Any]:
    rows = created_since(rows, start)
    return sorted(rows, key=lambda r: field_of(r, "created_at"), reverse=True)[:limit]


# ---------- PER-AGENT ----------

def _owner(row: Any) -> Any:
    return field_of(row, "created_by_id")


def csr_performance(
    csrs: Iterable[Any],
    leads: Iterable[Any],
    projects: Iterable[Any],
    payments: Iterable[Any],
) -> List[Dict[str, Any]]:
    leads_by = group_by(leads, _owner)
    projects_by = group_by(projects, _owner)
    payments_by = group_by(payments, _owner)

    out = []
    for csr in csrs:
        uid = field_of(csr, "id")
        own_leads = leads_by.get(uid, [])
        out.append(
            {
                "id": uid,
                "name": field_of(csr, "name"),
                "email": field_of(csr, "email"),
                "total_leads": len(own_leads),
                "total_projects": len(projects_by.get(uid, [])),
                "total_revenue": paid_revenue(payments_by.get(uid, [])),
                "conversion_rate": conversion_rate(own_leads),
            }
        )
    return sorted(out, key=lambda d: -d["total_revenue"])


def _by_agent(leads: Iterable[Any], agents: Mapping[int, Any]) -> "OrderedDict[int, List[Any]]":
    # leads whose owner no longer exists are dropped, like an inner join
    return group_by(
        (lead for lead in leads if _owner(lead) in agents),
        _owner,
    )


def leads_per_agent(leads: Iterable[Any], agents: Mapping[int, Any]) -> List[Dict[str, Any]]:
    out = []
    for agent_id, own in _by_agent(leads, agents).items():
        agent = agents[agent_id]
        converted = sum(1 for lead in own if field_of(lead, "status") == CONVERTED)
        out.append(
            {
                "agent_id": agent_id,
                "agent_name": field_of(agent, "name"),
                "agent_email": field_of(agent, "email"),
                "total_leads": len(own),
                "converted_leads": converted,
                "conversion_rate": conversion_rate(own),
            }
        )
    return sorted(out, key=lambda d: -d["total_leads"])


def leads_per_agent_daily(
    leads: Iterable[Any],
    agents: Mapping[int, Any],
    start: datetime,
) -> List[Dict[str, Any]]:
    out = []
    for agent_id, own in _by_agent(created_since(leads, start), agents).items():
        out.append(
            {
                "agent_id": agent_id,
                "agent_name": field_of(agents[agent_id], "name"),
                "daily_data": daily_counts(own, start),
                "total_leads": len(own),
            }
        )
    return sorted(out, key=lambda d: -d["total_leads"])


def leads_per_agent_by(
    leads: Iterable[Any],
    agents: Mapping[int, Any],
    name: str,
    label: str,
) -> List[Dict[str, Any]]:
    """Per agent, lead counts split by one field (`source` → category, `status`)."""
    out = []
    for agent_id, own in _by_agent(leads, agents).items():
        buckets = [
            {label: row[name], "count": row["count"]}
            for row in count_by(own, name)
        ]
        out.append(
            {
                "agent_id": agent_id,
                "agent_name": field_of(agents[agent_id], "name"),
                "breakdown": buckets,
                "total_leads": len(own),
            }
        )
    return sorted(out, key=lambda d: -d["total_leads"])
