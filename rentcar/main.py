import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from rentcar.config import (
    ALGORITHM,
    APP_HOST,
    APP_PORT,
    BASE_URL,
    BookingPolicy,
    CACHE_TTL_SECONDS,
    DEBUG,
    DATABASE_URL,
    EXPIRY_SWEEP_ENABLED,
    EXPIRY_SWEEP_INTERVAL_SECONDS,
    INVOICE_BUCKET,
    LOG_DATE_FORMAT,
    LOG_FORMAT,
    LOG_LEVEL,
    PRESIGNED_URL_TTL_SECONDS,
    SECRET_KEY,
    UPLOAD_DIR,
)
from rentcar.database.init import create_session_factory, init_db
from rentcar.routes import (
    admin_routes,
    booking_routes,
    file_routes,
    payment_routes,
    review_routes,
    vehicle_routes,
)
from rentcar.services.background_tasks import BackgroundTasks
from rentcar.services.cache_service import InMemoryCache
from rentcar.services.container import Services, build_services
from rentcar.services.notification_service import LoggingNotificationSink
from rentcar.services.storage_service import LocalObjectStorage

logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
logger = logging.getLogger(__name__)


def create_app(
    session_factory=None,
    services: Optional[Services] = None,
    storage=None,
    run_background_tasks: bool = EXPIRY_SWEEP_ENABLED,
) -> FastAPI:
    """Build the API with every collaborator constructed exactly once."""
    if session_factory is None:
        session_factory = create_session_factory(DATABASE_URL, pool_pre_ping=True)
    init_db(session_factory)

    if storage is None:
        storage = LocalObjectStorage(os.path.join(os.getcwd(), UPLOAD_DIR), BASE_URL, SECRET_KEY, ALGORITHM)
    if services is None:
        services = build_services(
            BookingPolicy(),
            InMemoryCache(),
            LoggingNotificationSink(),
            storage,
            INVOICE_BUCKET,
            cache_ttl=CACHE_TTL_SECONDS,
            url_ttl_seconds=PRESIGNED_URL_TTL_SECONDS,
        )

    background_tasks = BackgroundTasks(
        session_factory, services.booking_service, EXPIRY_SWEEP_INTERVAL_SECONDS
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if run_background_tasks:
            background_tasks.start()
        yield
        background_tasks.shutdown()

    app = FastAPI(title="Rentcar Booking API", lifespan=lifespan)
    app.state.session_factory = session_factory
    app.state.services = services
    app.state.storage = storage
    app.state.background_tasks = background_tasks

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(booking_routes.router)
    app.include_router(payment_routes.router)
    app.include_router(admin_routes.router)
    app.include_router(vehicle_routes.router)
    app.include_router(review_routes.router)
    app.include_router(file_routes.router)

    @app.get("/")
    def read_root():
        return {"name": "Rentcar Booking API", "version": "1.0.0"}

    logger.info("Application initialised")
    return app


if __name__ == "__main__":
    uvicorn.run("rentcar.main:create_app", factory=True, host=APP_HOST, port=APP_PORT, reload=DEBUG)
