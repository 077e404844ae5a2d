from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
import time
from .config import settings
from .dependencies import get_storage, init_storage
from .logger import logger
from .routes import order_statuses
from .schemas import HealthResponse, VersionResponse
from .exceptions import (
    OrderSyncBaseException,
    order_sync_exception_handler,
    http_exception_handler,
    generic_exception_handler,
)

app = FastAPI(
    title="Order Status Sync API",
    version=settings.APP_VERSION,
    description="Latest fulfillment status per order, mirrored into the legacy order list"
)

app.add_exception_handler(OrderSyncBaseException, order_sync_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    duration_ms = round((time.time() - start_time) * 1000, 2)

    log = logger.info if request.method in ("PUT", "POST") else logger.debug
    log(
        f"Order sync {request.method} {request.url.path} -> {response.status_code}",
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
            "storage_backend": settings.STORAGE_BACKEND,
        }
    )

    return response

app.include_router(order_statuses.router)

@app.on_event("startup")
async def startup():
    logger.info("Starting Order Status Sync API", extra={"storage_backend": settings.STORAGE_BACKEND})
    try:
        await init_storage()
    except Exception as e:
        logger.error(f"Failed to initialize storage: {e}")
        raise

@app.on_event("shutdown")
async def shutdown():
    logger.info("Shutting down Order Status Sync API")
    dispose = getattr(get_storage(), "dispose", None)
    if dispose is not None:
        await dispose()

@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    return {"status": "ok", "service": "order-sync"}

@app.get("/version", response_model=VersionResponse)
async def version():
    return {"version": settings.APP_VERSION}
