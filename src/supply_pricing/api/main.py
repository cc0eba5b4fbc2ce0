import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from supply_pricing import __version__
from supply_pricing.config.settings import get_settings
from supply_pricing.config.logging_setup import configure_logging
from supply_pricing.api.supply_records_api import router as supply_records_router
from supply_pricing.api.supply_records_api import tiers_router
from supply_pricing.api.state import get_service

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Supply Pricing API",
    description="Supply records with tiered quantity pricing",
    version=__version__,
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(supply_records_router)
app.include_router(tiers_router)


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.get("/")
async def root():
    return {"status": "online", "message": "Supply Pricing API Active"}


@app.get("/system/status")
async def get_status():
    settings = get_settings()
    try:
        service = get_service()
        record_count = service.get_stats()['total']
    except Exception as e:
        logger.exception("Status check failed")
        raise HTTPException(status_code=500, detail=str(e))
    return {
        "engine_active": True,
        "store": str(service.csv_path),
        "store_exists": service.csv_path.exists(),
        "records_count": record_count,
        "collect_all_violations": service.collect_all_violations,
        "log_level": settings.log_level,
    }
