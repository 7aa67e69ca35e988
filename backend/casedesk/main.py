import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from casedesk.api.audit import router as audit_router
from casedesk.api.cases import router as cases_router
from casedesk.api.policy import router as policy_router
from casedesk.auth.errors import PolicyError
from casedesk.config import settings
from casedesk.middleware.logging_config import configure_logging
from casedesk.middleware.metrics import PrometheusMiddleware
from casedesk.middleware.request_context import RequestContextMiddleware
from casedesk.services.audit_service import AuditService
from casedesk.services.case_manager import CaseManager, CaseWorkflowError
from casedesk.services.case_store import InMemoryCaseStore

configure_logging(settings.log_level, settings.log_format)
logger = logging.getLogger("casedesk")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Policy tables are module constants; services are wired once here,
    # before the first request is served.
    audit = AuditService()
    app.state.audit = audit
    app.state.case_manager = CaseManager(InMemoryCaseStore(), audit, settings)
    logger.info("casedesk started (environment=%s)", settings.environment)
    yield


app = FastAPI(
    title="casedesk",
    description="Case workflow and role-based access control for multi-tenant case management",
    version="0.1.0",
    lifespan=lifespan,
)

# ── CORS ─────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "X-Org-Id", "X-User-Id", "X-Role", "X-Request-ID"],
)

# ── Request context middleware (request ID + timing) ─────────────────────────
app.add_middleware(RequestContextMiddleware)

# ── Prometheus metrics middleware ────────────────────────────────────────────
app.add_middleware(PrometheusMiddleware)


# ── Error handlers ───────────────────────────────────────────────────────────

@app.exception_handler(PolicyError)
async def policy_error_handler(request: Request, exc: PolicyError):
    """400 for malformed policy input, 401/403 for denials."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


@app.exception_handler(CaseWorkflowError)
async def case_workflow_error_handler(request: Request, exc: CaseWorkflowError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return detailed error info in development mode so 500s are debuggable."""
    tb = traceback.format_exc()
    logger.error(
        "Unhandled %s on %s %s: %s\n%s",
        type(exc).__name__, request.method, request.url.path, exc, tb,
    )
    if settings.environment == "development":
        return JSONResponse(
            status_code=500,
            content={
                "detail": f"{type(exc).__name__}: {exc}",
                "code": "INTERNAL_ERROR",
                "traceback": tb.splitlines()[-5:],
            },
        )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error", "code": "INTERNAL_ERROR"},
    )


# Register API routers
app.include_router(policy_router)
app.include_router(cases_router)
app.include_router(audit_router)


@app.get("/api/health")
async def health_check():
    return {"status": "healthy", "environment": settings.environment}


@app.get("/metrics")
async def prometheus_metrics():
    """Expose Prometheus metrics in text format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
