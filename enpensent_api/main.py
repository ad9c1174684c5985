import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from enpensent_api.config import settings
from enpensent_api.core.errors import MarketplaceError, marketplace_error_handler
from enpensent_api.core.rate_limit import limiter
from enpensent_api.modules.auth import routes as auth_routes
from enpensent_api.modules.listings import routes as listings_routes
from enpensent_api.modules.marketplace import routes as marketplace_routes
from enpensent_api.modules.visualizations import routes as visualizations_routes
from enpensent_api.modules.subscriptions import routes as subscriptions_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

# Checkout redirects land on the web app, never inside a frame
SECURITY_HEADERS = [
    (b"X-Content-Type-Options", b"nosniff"),
    (b"X-Frame-Options", b"DENY"),
    (b"Referrer-Policy", b"strict-origin-when-cross-origin"),
]

app = FastAPI(
    title=settings.app_name,
    description="Vision marketplace, Visionary memberships and Stripe billing",
    debug=settings.debug,
    redirect_slashes=False,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
# Purchase endpoints answer {"error": ...}; everything else keeps FastAPI's {"detail": ...}
app.add_exception_handler(MarketplaceError, marketplace_error_handler)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
    detail = "Internal server error" if settings.is_production else str(exc)
    return JSONResponse(status_code=500, content={"detail": detail})


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", []).extend(SECURITY_HEADERS)
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

for module_routes in (
    auth_routes,
    marketplace_routes,
    listings_routes,
    visualizations_routes,
    subscriptions_routes,
):
    app.include_router(module_routes.router, prefix="/api/v1")


def missing_configuration() -> list:
    required = {
        "SUPABASE_URL": settings.supabase_url,
        "STRIPE_SECRET_KEY": settings.stripe_secret_key,
    }
    if settings.is_production:
        required["SUPABASE_SERVICE_ROLE_KEY"] = settings.supabase_service_role_key
        required["STRIPE_WEBHOOK_SECRET"] = settings.stripe_webhook_secret
    return [name for name, value in required.items() if not value]


@app.on_event("startup")
async def startup_event():
    logger.info(f"Starting {settings.app_name} ({settings.environment})")
    for name in missing_configuration():
        logger.warning(f"{name} is not set")
    if not settings.stripe_webhook_secret:
        logger.warning("Stripe webhook signatures will not be verified")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Application shutdown")


@app.get("/")
async def root():
    return {"message": "Welcome to enpensent-api", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready():
    """Readiness probe: 503 until Supabase and Stripe are configured"""
    missing = missing_configuration()
    if missing:
        return JSONResponse(status_code=503, content={"status": "not ready", "missing": missing})
    return {"status": "ready"}
