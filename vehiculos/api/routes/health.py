from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST
from sqlalchemy.orm import Session

from vehiculos.api.deps import get_price_processor, require_admin
from vehiculos.core import metrics
from vehiculos.core.errors import ApiError, AppHTTPException
from vehiculos.db.session import get_db
from vehiculos.ingestion.coordinator import PriceIngestionCoordinator
from vehiculos.schemas.health import HealthOut, ProcessingStatusOut, SystemInfoOut, TriggerOut
from vehiculos.services.health import health_check, system_info

router = APIRouter(tags=["health"])


@router.get("/healthz", response_model=HealthOut)
def healthz(db: Session = Depends(get_db)) -> JSONResponse:
    result = health_check(db)
    return JSONResponse(status_code=200 if result.status == "healthy" else 503, content=result.model_dump(mode="json"))


@router.get("/metrics", response_class=PlainTextResponse)
def prometheus_metrics() -> PlainTextResponse:
    return PlainTextResponse(content=metrics.render_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/system", response_model=SystemInfoOut, dependencies=[Depends(require_admin)])
def system() -> SystemInfoOut:
    return system_info()


@router.get("/price-processor/status", response_model=ProcessingStatusOut, dependencies=[Depends(require_admin)])
def price_processor_status(processor: PriceIngestionCoordinator = Depends(get_price_processor)) -> ProcessingStatusOut:
    status = processor.get_processing_status()
    return ProcessingStatusOut.model_validate(
        {
            "is_processing": status.is_processing,
            "queue_length": status.queue_length,
            "started_at": status.started_at,
            "last_run": vars(status.last_run) if status.last_run else None,
        }
    )


@router.post("/price-processor/trigger", response_model=TriggerOut, status_code=202, dependencies=[Depends(require_admin)])
async def trigger_price_processing(processor: PriceIngestionCoordinator = Depends(get_price_processor)) -> TriggerOut:
    if not processor.trigger():
        raise AppHTTPException(
            status_code=409,
            error=ApiError(code="already_processing", message="Price processing is already in progress"),
        )
    return TriggerOut(status="accepted", message="Price processing started")
