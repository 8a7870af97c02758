import os
import time
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from .db import check_db, close_db, get_db, init_db
from .errors import StoreUnavailable, TaskNotFound, TaskValidationError
from .logging_config import setup_logging
from .routes import tasks


setup_logging()
logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    try:
        await init_db()
    except Exception as e:
        logger.warning("Database connection failed: %s", e)
        logger.warning("Application will start but database features may not work")
    yield
    # Shutdown
    await close_db()


# Create FastAPI app
app = FastAPI(
    title="Task Management API",
    description="A FastAPI backend for managing tasks",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
allowed_origins = os.getenv("ALLOWED_ORIGINS", "*")
if allowed_origins.strip() == "*":
    cors_origins = ["*"]
else:
    cors_origins = [o.strip() for o in allowed_origins.split(",") if o.strip()]
logger.info("CORS origins: %s", cors_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials="*" not in cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(
        "%s %s -> %d (%.1f ms)",
        request.method, request.url.path, response.status_code, elapsed_ms,
    )
    return response


def _validation_response(errors: dict) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"message": "The given data was invalid.", "errors": errors},
    )


@app.exception_handler(TaskValidationError)
async def task_validation_handler(request: Request, exc: TaskValidationError):
    return _validation_response(exc.errors)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for error in exc.errors():
        # drop the "body"/"query"/"path" prefix FastAPI adds
        loc = [str(part) for part in error.get("loc", ())]
        field = ".".join(loc[1:]) or (loc[0] if loc else "body")
        errors.setdefault(field, error["msg"])
    return _validation_response(errors)


@app.exception_handler(TaskNotFound)
async def task_not_found_handler(request: Request, exc: TaskNotFound):
    return JSONResponse(status_code=404, content={"detail": "Task not found"})


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    return JSONResponse(status_code=503, content={"detail": "Task store unavailable"})


# Include routers
app.include_router(tasks.router, prefix="/api")
app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")


@app.get("/", include_in_schema=False)
async def index():
    """HTML page that drives the task API from the browser"""
    return FileResponse(STATIC_DIR / "index.html", media_type="text/html")


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "task-management-api",
        "version": app.version,
    }


@app.get("/health/db")
async def health_db(db: AsyncSession = Depends(get_db)):
    """Database connectivity check"""
    try:
        await check_db(db)
    except (SQLAlchemyError, OSError):
        logger.exception("Database health check failed")
        return JSONResponse(status_code=503, content={"status": "unavailable"})
    return {"status": "ok"}


@app.get("/api/info")
async def api_info():
    """API information endpoint"""
    return {
        "name": app.title,
        "version": app.version,
        "docs": "/docs",
        "endpoints": {
            "list": "GET /api/tasks?category=&status=",
            "count": "GET /api/tasks/count?category=&status=",
            "get": "GET /api/tasks/{id}",
            "create": "POST /api/tasks",
            "update": "PUT /api/tasks/{id}",
            "delete": "DELETE /api/tasks/{id}",
        },
    }


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    host = os.getenv("HOST", "0.0.0.0")
    debug = os.getenv("DEBUG", "True").lower() == "true"

    uvicorn.run(
        "taskmanager.main:app",
        host=host,
        port=port,
        reload=debug,
        log_level="info"
    )
