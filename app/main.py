from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.http import (
    blocks_router,
    comments_router,
    documents_router,
    health_router,
    templates_router,
    versions_router,
)
from app.core.config import settings
from app.core.db import init_models

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables on startup; migrations own schema changes"""
    await init_models()
    logger.info("Database models initialized")
    yield


app = FastAPI(
    title="BlockDocs",
    description="Block-based documents with smart links and version history",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(templates_router)
app.include_router(documents_router)
app.include_router(blocks_router)
app.include_router(versions_router)
app.include_router(comments_router)


@app.get("/")
async def root():
    return {
        "message": "BlockDocs API",
        "version": app.version,
        "docs": "/docs",
        "health": "/health"
    }
