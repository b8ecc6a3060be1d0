"""FastAPI application setup."""

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from remote_config.db.database import init_db
from remote_config.core.errors import RemoteConfigError
from remote_config.api.errors import remote_config_error_handler
from remote_config.api.limits import limiter
from remote_config.api.routes import configs, public, rules
from remote_config.config import PRODUCT_NAME, PRODUCT_TAGLINE, PRODUCT_VERSION, PRODUCT_DESCRIPTION

app = FastAPI(
    title=f"{PRODUCT_NAME} API",
    description=PRODUCT_DESCRIPTION,
    version=PRODUCT_VERSION,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(RemoteConfigError, remote_config_error_handler)


@app.on_event("startup")
def startup():
    """Initialize database on startup."""
    init_db()


@app.get("/api/health")
def health():
    """Health check endpoint."""
    return {
        "name": PRODUCT_NAME,
        "version": PRODUCT_VERSION,
        "status": "ok",
        "tagline": PRODUCT_TAGLINE,
    }


# Mount API routers
app.include_router(public.router, prefix="/api/configs", tags=["configs"])
app.include_router(configs.router, prefix="/api/admin/configs", tags=["admin"])
app.include_router(rules.router, prefix="/api/admin/configs/{config_id}/rules", tags=["admin"])
