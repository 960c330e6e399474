# backend/crm/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from crm.api.admin_routes import router as admin_router
from crm.api.auth_routes import router as auth_router
from crm.api.dashboard_routes import router as dashboard_router
from crm.api.invoice_routes import router as invoice_router
from crm.api.lead_routes import router as lead_router
from crm.api.payment_routes import router as payment_router
from crm.api.project_routes import router as project_router
from crm.core.config import settings
from crm.core.database import SessionLocal
from crm.seed_users import seed_users_if_empty

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.seed_default_users:
        db = SessionLocal()
        try:
            created = seed_users_if_empty(db)
            if created:
                logger.info("Seeded %s default user(s)", created)
        finally:
            db.close()
    yield


app = FastAPI(title="Leads Management API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["Authorization", "Content-Type"],
)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # one 400 listing every bad field instead of FastAPI's 422
    problems = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        field = ".".join(loc) or "body"
        problems.append(f"{field}: {err.get('msg')}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "; ".join(problems)},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
app.include_router(admin_router, prefix="/api/admin", tags=["admin"])
app.include_router(lead_router, prefix="/api/leads", tags=["leads"])
app.include_router(project_router, prefix="/api/projects", tags=["projects"])
app.include_router(payment_router, prefix="/api/payments", tags=["payments"])
app.include_router(invoice_router, prefix="/api/invoices", tags=["invoices"])
app.include_router(dashboard_router, prefix="/api/dashboard", tags=["dashboard"])


@app.get("/api/health")
def health():
    return {"status": "ok"}
