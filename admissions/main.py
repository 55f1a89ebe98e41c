"""Admissions API application: middleware, error envelope and routers."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from admissions.core.config import settings
from admissions.core.rate_limit import limiter
from admissions.core.structured_logging import build_log_context, configure_logging
from admissions.db.session import engine
from admissions.routers import applications, forms, forms_public
from admissions.schemas.common import error_body

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# ============================================================================
# Error tracking (production only)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        release=settings.VERSION,
        integrations=[FastApiIntegration(transaction_style="endpoint"), SqlalchemyIntegration()],
        traces_sample_rate=0.1,
        send_default_pii=False,  # applicant data stays out of Sentry
    )
    logger.info("Sentry enabled for env=%s", settings.ENV)

# ============================================================================
# App
# ============================================================================

_docs_enabled = settings.ENV == "dev"

app = FastAPI(
    title="Admissions Forms API",
    description="Dynamic application forms and applicant review lifecycle",
    version=settings.VERSION,
    docs_url="/docs" if _docs_enabled else None,
    redoc_url="/redoc" if _docs_enabled else None,
)
app.state.limiter = limiter

# Admin UI sends the session cookie, so credentials must be allowed
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With"],
)

# ============================================================================
# Error envelope
# ============================================================================


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    if isinstance(detail, dict):
        body = error_body(
            str(detail.get("message", "Request failed")),
            data=detail.get("data"),
            errors=detail.get("errors"),
        )
    else:
        body = error_body(str(detail))
    return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content=error_body("Validation failed", errors=errors))


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(status_code=429, content=error_body(f"Too many requests: {exc.detail}"))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(
        "Unhandled error",
        extra=build_log_context(route=request.url.path, method=request.method),
    )
    return JSONResponse(status_code=500, content=error_body("Internal server error"))


# ============================================================================
# Routers
# ============================================================================

# Public and review routers first: their static segments must win over /{identifier}
app.include_router(forms_public.router, prefix="/api/forms", tags=["public"])
app.include_router(applications.router, prefix="/api/forms/applications", tags=["applications"])
app.include_router(forms.router, prefix="/api/forms", tags=["forms"])


@app.get("/health")
def health():
    """Liveness plus a database round-trip."""
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
