from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import os

from bookloop.core.config import settings
from bookloop.models import utcnow
from bookloop.routers import (
    books,
    discovery,
    favorites,
    follows,
    me,
    reading_status,
    reviews,
)
from bookloop.database import init_db

# ----------------------------
# Logging
# ----------------------------
logger = logging.getLogger("bookloop")
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

# Server fingerprint for debugging
SERVER_BOOT_ID = f"bookloop-backend::{os.getpid()}::{utcnow().isoformat()}"

BUILD_ID = os.getenv("BUILD_ID", "missing")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("[BOOT] %s", SERVER_BOOT_ID)
    init_db()
    yield


app = FastAPI(title="bookloop", debug=settings.DEBUG, lifespan=lifespan)


# ----------------------------
# CORS
# ----------------------------
cors_origins = settings.cors_origins_list
logger.info("[CORS] allow_origins=%s", cors_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_build_header(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Bookloop-Build"] = BUILD_ID
    return response


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("[UNHANDLED] %s %s", request.method, request.url.path)

    response = JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error"},
    )

    # Error responses bypass the CORS middleware, so mirror its headers here
    origin = request.headers.get("origin")
    if origin and origin in cors_origins:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"

    return response


# ----------------------------
# Routers
# ----------------------------
app.include_router(me.router, prefix="/api")
app.include_router(books.router, prefix="/api")
app.include_router(reviews.router, prefix="/api")
app.include_router(favorites.router, prefix="/api")
app.include_router(follows.router, prefix="/api")
app.include_router(reading_status.router, prefix="/api")
app.include_router(discovery.router, prefix="/api")


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/api/health")
def api_health_check():
    return {"status": "ok"}


@app.get("/api/_debug/server-id")
def server_id():
    return {"server_id": SERVER_BOOT_ID, "build_id": BUILD_ID}
