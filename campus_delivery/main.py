"""
Campus Delivery: FastAPI application entrypoint
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from campus_delivery.api import analytics, cart, catalog, checkout, fees, health, orders, session
from campus_delivery.core.clients import AppClients
from campus_delivery.core.config import Settings, get_settings
from campus_delivery.core.errors import AppError, ErrorType
from campus_delivery.middleware.auth import JWTAuthMiddleware
from campus_delivery.middleware.idempotency import IdempotencyMiddleware

logger = logging.getLogger(__name__)


def _request_validation_message(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        field = ".".join(str(p) for p in error.get("loc", ()) if p not in ("body", "query", "header"))
        parts.append(f"{field}: {error.get('msg')}" if field else str(error.get("msg")))
    return ". ".join(parts) or "Please check your input and try again."


def create_app(settings: Settings | None = None, clients: AppClients | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = clients is None
        app.state.clients = clients or AppClients.from_settings(settings)
        logger.info("%s %s started", settings.SERVICE_NAME, settings.SERVICE_VERSION)
        yield
        if owned:
            await app.state.clients.aclose()

    app = FastAPI(
        title="Campus Delivery",
        description="Campus food ordering: catalog, cart, checkout, order dashboards.",
        version=settings.SERVICE_VERSION,
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url=None,
    )
    app.state.settings = settings
    # available before startup too, so tests can drive the app without the lifespan
    if clients is not None:
        app.state.clients = clients

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Added last runs first: auth, then idempotency
    app.add_middleware(IdempotencyMiddleware, settings=settings)
    app.add_middleware(JWTAuthMiddleware, settings=settings)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.http_status, content=exc.normalized.model_dump(mode="json"))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content={"type": ErrorType.VALIDATION.value, "message": _request_validation_message(exc)},
        )

    if settings.METRICS_ENABLED:
        Instrumentator().instrument(app).expose(app, endpoint="/metrics")

    app.include_router(health.router)
    app.include_router(catalog.router)
    app.include_router(session.router)
    app.include_router(cart.router)
    app.include_router(fees.router)
    app.include_router(checkout.router)
    app.include_router(orders.router)
    app.include_router(analytics.router)

    @app.get("/")
    async def root():
        return {"service": settings.SERVICE_NAME, "version": settings.SERVICE_VERSION}

    return app


app = create_app()
