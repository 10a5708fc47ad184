"""
Protocol Event Seating System - FastAPI Backend
Main application entry point
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from protocol_seating import __version__
from protocol_seating.core.config import settings
from protocol_seating.core.db import engine, Base
from protocol_seating.core.logging import configure_logging
from protocol_seating.api import routes_admin, routes_layout, routes_public
from protocol_seating.services.repositories import use_firestore

configure_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    if not use_firestore():
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created")
    else:
        logger.info("Using Firestore guest storage")
    yield
    logger.info("Application shutdown")

# Create FastAPI application
app = FastAPI(
    title="Protocol Event Seating System",
    description="Guest management and seat layout backend for protocol events",
    version=__version__,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(routes_public.router, tags=["public"])
app.include_router(routes_admin.router, prefix="/admin", tags=["admin"])
app.include_router(routes_layout.router, prefix="/admin", tags=["seating"])

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=8000,
        reload=True
    )
