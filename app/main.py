import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from fastapi import FastAPI, status
from app.core.db import init_db, close_db
from app.api.v1.payments import router as payments_router, legacy_router as payments_legacy_router
from app.consumers.outbox_publisher import run_outbox_publisher
from app.core.config import PROJECT_NAME, VERSION, RUN_OUTBOX_PUBLISHER
from app.core.exception_handlers import setup_exception_handlers
from app.messaging.sqs_client import create_queue_client

log = logging.getLogger("payments.app")

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handles startup and shutdown events."""
    log.info(f"Starting {PROJECT_NAME} v{VERSION}...")
    await init_db() # Connect to DB and generate schemas

    # The API process hosts the outbox publisher; the inbound consumer runs as its own worker
    outbox_task = None
    if RUN_OUTBOX_PUBLISHER:
        outbox_task = asyncio.create_task(run_outbox_publisher(create_queue_client()))
    yield
    if outbox_task is not None:
        outbox_task.cancel()
        with suppress(asyncio.CancelledError):
            await outbox_task
    await close_db()
    log.info(f"{PROJECT_NAME} stopped.")

app = FastAPI(
    title=PROJECT_NAME,
    version=VERSION,
    lifespan=lifespan,
    # Configure API documentation and paths
    docs_url="/docs",
    redoc_url="/redoc"
)

# Include routers for modular API structure
app.include_router(payments_router, prefix="/api/v1/payments", tags=["Payments"])
app.include_router(payments_legacy_router, tags=["Payments (legacy)"])


setup_exception_handlers(app)

@app.get("/health", status_code=status.HTTP_200_OK)
async def health_check():
    """Simple health check endpoint."""
    return {"status": "ok", "app_name": PROJECT_NAME}
