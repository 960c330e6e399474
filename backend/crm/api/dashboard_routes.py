# backend/crm/api/dashboard_routes.py

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from crm.api.common import single
from crm.api.deps_auth import get_access, get_db, require_admin
from crm.core.permissions import Role
from crm.models.invoice import Invoice as InvoiceModel
from crm.models.lead import Lead as LeadModel
from crm.models.payment import Payment as PaymentModel
from crm.models.project import Project as ProjectModel
from crm.models.user import User as UserModel
from crm.services import analytics
from crm.services.authorization import Access

router = APIRouter()


# ---------- SHAPERS ----------

def lead_brief(x: LeadModel) -> dict:
    return {"id": x.id, "name": x.name, "email": x.email, "status": x.status, "created_at": x.created_at}


def project_brief(x: ProjectModel) -> dict:
    return {
        "id": x.id,
        "name": x.name,
        "client": x.client,
        "status": x.status,
        "budget": x.budget,
        "created_at": x.created_at,
    }


def invoice_brief(x: InvoiceModel) -> dict:
    return {
        "id": x.id,
        "invoice_number": x.invoice_number,
        "total_amount": x.total_amount,
        "status": x.status,
        "created_at": x.created_at,
    }


def rollup(leads, projects, payments, recent_limit: int) -> dict:
    """The part of the dashboard that admin and CSR views share."""
    last_30 = analytics.since(30)
    last_7 = analytics.since(7)
    return {
        "overview": {
            "total_leads": len(leads),
            "total_projects": len(projects),
            "total_revenue": analytics.paid_revenue(payments),
            "conversion_rate": analytics.conversion_rate(leads),
        },
        "leads_by_status": analytics.count_by(leads, "status"),
        "projects_by_status": analytics.count_and_sum_by(projects, "status", "budget"),
        "recent_activity": {
            "leads": [lead_brief(x) for x in analytics.recent(leads, last_30, recent_limit)],
            "projects": [project_brief(x) for x in analytics.recent(projects, last_30, recent_limit)],
        },
        "daily_stats": {
            "leads": analytics.daily_counts(leads, last_7),
            "revenue": analytics.daily_revenue(payments, last_7),
        },
    }


# ---------- ROUTES ----------

@router.get("/admin")
def admin_dashboard(
    db: Session = Depends(get_db),
    _admin: Access = Depends(require_admin),
):
    leads = db.query(LeadModel).all()
    projects = db.query(ProjectModel).all()
    payments = db.query(PaymentModel).all()
    invoices = db.query(InvoiceModel).all()
    csrs = db.query(UserModel).filter(UserModel.role == Role.CSR.value).all()

    data = rollup(leads, projects, payments, recent_limit=5)
    data["overview"]["total_invoices"] = len(invoices)
    data["overview"]["total_csrs"] = len(csrs)
    data["csr_performance"] = analytics.csr_performance(csrs, leads, projects, payments)
    data["recent_activity"]["invoices"] = [
        invoice_brief(x) for x in analytics.recent(invoices, analytics.since(30), 5)
    ]
    data["monthly_revenue"] = analytics.monthly_revenue(payments, analytics.months_ago(12))
    return single(data)


@router.get("/csr")
def csr_dashboard(
    db: Session = Depends(get_db),
    access: Access = Depends(get_access),
):
    # an admin calling this sees the global numbers through the same scope()
    leads = access.scope(db.query(LeadModel), LeadModel).all()
    projects = access.scope(db.query(ProjectModel), ProjectModel).all()
    payments = access.scope(db.query(PaymentModel), PaymentModel).all()

    return single(rollup(leads, projects, payments, recent_limit=10))


@router.get("/agent-analytics")
def agent_analytics(
    db: Session = Depends(get_db),
    _admin: Access = Depends(require_admin),
):
    leads = db.query(LeadModel).all()
    agents = {u.id: u for u in db.query(UserModel).all()}

    return single(
        {
            "leads_per_agent": analytics.leads_per_agent(leads, agents),
            "leads_per_agent_date_wise": analytics.leads_per_agent_daily(
                leads, agents, analytics.since(30)
            ),
            "leads_per_agent_category_wise": analytics.leads_per_agent_by(
                leads, agents, "source", "category"
            ),
            "leads_per_agent_status_wise": analytics.leads_per_agent_by(
                leads, agents, "status", "status"
            ),
        }
    )
