import logging
import time
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from vehiculos.api.deps import get_optional_user
from vehiculos.api.routes import auth, health, orders, vehicles
from vehiculos.core import metrics
from vehiculos.core.config import get_settings
from vehiculos.core.logging_setup import configure_logging
from vehiculos.db.base import Base
from vehiculos.db.seed import seed_users, seed_vehicles
from vehiculos.db.session import engine
from vehiculos.ingestion.coordinator import get_price_processor
from vehiculos.ingestion.errors import FeedConfigurationError
from vehiculos.models import User
from vehiculos.scheduler import shutdown_scheduler, start_scheduler

logger = logging.getLogger(__name__)

settings = get_settings()
app = FastAPI(title=settings.app_name, version=settings.app_version)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def record_request_metrics(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    route = request.scope.get("route")
    route_path = getattr(route, "path", request.url.path)
    metrics.record_request(request.method, route_path, response.status_code, time.perf_counter() - started)
    if response.status_code >= 500:
        metrics.ERRORS.labels(type="server", route=route_path).inc()
    elif response.status_code >= 400:
        metrics.ERRORS.labels(type="client", route=route_path).inc()
    return response


@app.on_event("startup")
def startup() -> None:
    configure_logging(settings.log_level)
    Base.metadata.create_all(bind=engine)
    if settings.seed_on_startup:
        with Session(engine) as db:
            seed_users(db)
            seed_vehicles(db)
    if settings.scheduler_enabled:
        try:
            processor = get_price_processor()
        except FeedConfigurationError as exc:
            logger.error("Price processor disabled: %s", exc)
        else:
            start_scheduler(processor, settings.price_feed_interval_seconds)
    logger.info("%s started in %s mode", settings.app_name, settings.env)


@app.on_event("shutdown")
def shutdown() -> None:
    shutdown_scheduler()


@app.exception_handler(RequestValidationError)
def request_validation_exception_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "detail": {
                "code": "validation_error",
                "message": "Invalid request",
                "details": {"errors": jsonable_encoder(exc.errors())},
            }
        },
    )


app.include_router(auth.router, prefix=settings.api_prefix)
app.include_router(vehicles.router, prefix=settings.api_prefix)
app.include_router(orders.router, prefix=settings.api_prefix)
app.include_router(health.router, prefix=settings.api_prefix)


@app.get("/")
def root(user: User | None = Depends(get_optional_user)) -> dict[str, object]:
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "api": settings.api_prefix,
        "authenticated": user is not None,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
