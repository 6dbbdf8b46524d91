from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from timing_asgi import TimingMiddleware, TimingClient  # type: ignore
from timing_asgi.integrations import StarletteScopeToName  # type: ignore

from checklist.core import config
from checklist.core.database.engine import init_db
from checklist.core.errors import ChecklistError, PersistenceError, ValidationError
from checklist.features.organizations.routes import invitation_router
from checklist.features.organizations.routes import router as organization_router
from checklist.features.permissions.routes import router as permission_router
from checklist.features.submissions.routes import router as submission_router
from checklist.features.templates.routes import router as template_router
from checklist.features.users.dependencies import get_authorization_header
from checklist.utils import get_logger


log = get_logger(__name__)
log.info("Initializing server")
app = FastAPI(
    title="Checklist Backend",
    description="Inspection checklist templates and submissions with role-based access",
    version="0.1.0",
    docs_url="/docs" if config.ENABLE_DOCS else None,
    redoc_url="/redoc" if config.ENABLE_DOCS else None,
    openapi_url="/openapi.json" if config.ENABLE_DOCS else None
)
limiter = Limiter(key_func=get_authorization_header, default_limits=[config.RATE_LIMIT])
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)


class PrintTimings(TimingClient):
    def timing(self, metric_name, timing, tags):
        log.debug(dict(route=metric_name.removeprefix("main.checklist.features."), timing=timing, tags=tags))


app.add_middleware(TimingMiddleware, client=PrintTimings(), metric_namer=StarletteScopeToName("main", app))

if config.ENABLE_DOCS:
    log.warning("Docs enabled")
if config.ALLOW_ORIGIN:
    log.warning("Setting allow origin to %s", config.ALLOW_ORIGIN)
    origins = [config.ALLOW_ORIGIN]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    errors = dict()
    for error in exc.errors():
        if "loc" not in error or "msg" not in error:
            continue
        key = error["loc"][-1]
        if key == "__root__":
            key = "root"
        errors[key] = error["msg"]
    log.info("Request validation error %s", errors)
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder({"detail": "Invalid request", "errors": errors}),
    )


@app.exception_handler(ValidationError)
async def answer_validation_handler(_request: Request, exc: ValidationError):
    log.info("Validation failed: %s %s", exc.message, exc.errors)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "errors": exc.errors})


@app.exception_handler(PersistenceError)
async def persistence_error_handler(_request: Request, exc: PersistenceError):
    log.error("Persistence failure: %s", exc.message, exc_info=exc.__cause__ or exc)
    return JSONResponse(status_code=500, content={"detail": PersistenceError.default_message})


@app.exception_handler(ChecklistError)
async def checklist_error_handler(_request: Request, exc: ChecklistError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RateLimitExceeded)
def rate_limit_exceeded_handler(_request: Request, _exc: RateLimitExceeded) -> Response:
    return JSONResponse({"error": "You are going too fast"}, status_code=429)


@app.on_event("startup")
async def startup():
    """Initialize database on application startup."""
    log.info("Initializing database...")
    await init_db()
    log.info("Database initialized successfully")


@app.get("/")
async def root():
    """Root endpoint - API health check."""
    return {
        "message": "Checklist Backend API",
        "version": "0.1.0",
        "status": "online",
        "docs": "/docs" if config.ENABLE_DOCS else None,
        "authentication": {
            "info": "Protected endpoints require Bearer token in Authorization header",
            "protected_endpoints": [
                "/organizations/*", "/invitations/*", "/templates/*", "/submissions/*",
                "/permissions/check", "/permissions/me"
            ],
            "public_endpoints": ["/templates/field-types", "/permissions/roles", "/invitations/by-token"]
        },
        "features": {
            "organizations": "Tenancy boundary with owner/admin/member/viewer memberships",
            "invitations": "Expiring invitations that members accept or decline",
            "templates": "Ordered sections and typed fields, system and organization templates",
            "submissions": "Validated answers stored as snapshots of the template",
            "permissions": "Fixed role table with a per-member delete override"
        }
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# Organization routes
app.include_router(organization_router, prefix="/organizations", tags=["organizations"])

# Invitation routes
app.include_router(invitation_router, prefix="/invitations", tags=["invitations"])

# Template routes
app.include_router(template_router, prefix="/templates", tags=["templates"])

# Submission routes
app.include_router(submission_router, prefix="/submissions", tags=["submissions"])

# Permission routes
app.include_router(permission_router, prefix="/permissions", tags=["permissions"])
