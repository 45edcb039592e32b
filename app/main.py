# app/main.py

from contextlib import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI
from api.routes import relationships
from api.exception_handlers import register_exception_handlers
from config.settings import settings
from infrastructure.redis_connection import redis_connection
from infrastructure.postgres_connection import postgres_connection
import logging

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events"""
    # Startup: Initialize connections
    await redis_connection.connect()
    await postgres_connection.connect()
    logger.info(f"{settings.APP_NAME} started")

    yield

    # Shutdown: close connections
    await postgres_connection.disconnect()
    await redis_connection.disconnect()


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# Register domain exception handlers
register_exception_handlers(app)


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint for Docker and monitoring"""
    return {"status": "healthy"}


# CORS configuration - important: can't use "*" with allow_credentials=True
app.add_middleware(
    middleware_class=CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(relationships.relationships_router, prefix="/v1")
