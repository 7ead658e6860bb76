"""
Pair-Queueing and Event-Orchestration Service - FastAPI Backend
Main application entry point
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from app.core.config import settings
from app.core.errors import EventEngineError
from app.api import routes_admin, routes_cron, routes_events, routes_public
from app.services.document_store import get_document_store, use_firestore
from app.services.scheduler import start_event_queue_scheduler, start_event_reminder_scheduler
from app.utils.responses import domain_error_response

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    get_document_store()
    logger.info(f"Document store ready ({'firestore' if use_firestore() else 'sql'})")

    tasks = []
    if settings.EVENT_QUEUE_AUTORUN:
        tasks.append(asyncio.create_task(start_event_queue_scheduler()))
    if settings.EVENT_REMINDER_AUTORUN:
        tasks.append(asyncio.create_task(start_event_reminder_scheduler()))

    yield

    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
    logger.info("Application shutdown")

# Create FastAPI application
app = FastAPI(
    title="Pair-Queueing and Event-Orchestration Service",
    description="Batches mutually-matched pairs into small social events and runs their join, vote and confirm lifecycle",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(EventEngineError)
async def handle_domain_error(request: Request, exc: EventEngineError):
    return domain_error_response(exc)

# Include routers
app.include_router(routes_public.router, tags=["public"])
app.include_router(routes_events.router, prefix="/events", tags=["events"])
app.include_router(routes_admin.router, prefix="/admin", tags=["admin"])
app.include_router(routes_cron.router, prefix="/cron", tags=["cron"])

# Note: Run this ASGI app directly with Uvicorn or Hypercorn. For Gunicorn,
# use `uvicorn.workers.UvicornWorker` instead of wrapping the app.

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=8000,
        reload=True
    )
