import logging
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from app.config import settings
from app.core.dependencies import get_session_loader
from app.core.session import SessionLoader, session_store
from app.modules.auth import routes as auth_routes
from app.modules.users import routes as users_routes
from app.modules.groups import routes as groups_routes
from app.modules.permissions import routes as permissions_routes
from app.modules.channels import routes as channels_routes
from app.modules.page_settings import routes as page_settings_routes
from app.modules.weather import routes as weather_routes
from app.modules.audit import routes as audit_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    redirect_slashes=False,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
    return JSONResponse(status_code=500, content={"detail": str(exc)})


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"X-XSS-Protection", b"1; mode=block"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include module routes
for module_routes in (
    auth_routes,
    users_routes,
    groups_routes,
    permissions_routes,
    channels_routes,
    page_settings_routes,
    weather_routes,
    audit_routes,
):
    app.include_router(module_routes.router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    logger.info(f"Application startup ({settings.environment})")


@app.on_event("shutdown")
async def shutdown_event():
    session_store.clear()
    logger.info("Application shutdown")


@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.app_name}", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready(loader: SessionLoader = Depends(get_session_loader)):
    """Readiness probe: reports whether a superuser has been provisioned."""
    return {"status": "ready", "system_locked": loader.check_system_locked()}
