# wastemap/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from wastemap.core.config import settings
from wastemap.core.errors import WasteMapError
from wastemap.middleware.audit import AuditMiddleware
from wastemap.routers import admin, auth, pickups, users

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.use_mongo:
        from wastemap.core.db import get_client, get_db
        from wastemap.core.indexes import ensure_indexes

        await ensure_indexes(get_db())
        logger.info("MongoDB ready: %s", settings.mongo_db)
        yield
        get_client().close()
    else:
        logger.info("Using in-memory storage (USE_MONGO not set)")
        yield


# --- Create app FIRST ---
app = FastAPI(lifespan=lifespan, title="WasteMap API", version="1.0.0")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(AuditMiddleware)


# ---------------- Error rendering ----------------
@app.exception_handler(WasteMapError)
async def wastemap_error_handler(request: Request, exc: WasteMapError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "kind": exc.kind},
        headers=headers,
    )

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(exc.errors()), "kind": "validation_error"},
    )

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    # storage/driver errors are logged, never echoed to the client
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error", "kind": "internal"})


# ---------------- Include routers ----------------
app.include_router(auth.router)       # /api/auth
app.include_router(pickups.router)    # /api/pickups
app.include_router(users.router)      # /api/users
app.include_router(admin.router)      # /api/admin


# Health
@app.get("/api/health")
def health():
    return {"ok": True, "storage": "mongo" if settings.use_mongo else "memory"}

@app.get("/")
def root():
    return {
        "message": "WasteMap API is running",
        "endpoints": {
            "auth": "/api/auth",
            "pickups": "/api/pickups",
            "users": "/api/users",
            "admin": "/api/admin",
            "health": "/api/health",
        },
    }
