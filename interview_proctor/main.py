"""
Interview Proctor Service - FastAPI Application

Run with:
    uvicorn interview_proctor.main:app --port 8001
"""
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .proctor import api as proctor_api
from .utils.logging import setup_logger, log_startup, log_request, log_error, generate_request_id

setup_logger("interview_proctor", getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

app = FastAPI(
    title=settings.APP_NAME,
    description="Event detection and integrity scoring for monitored interviews",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None
)

# Health checks and high-rate observation posts are not logged per request
QUIET_PATHS = ("/health", "/favicon.ico")
QUIET_SUFFIXES = ("/face", "/audio")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Tag each request with an ID and log it with timing."""
    request_id = request.headers.get("X-Request-ID") or generate_request_id()
    start = time.time()
    path = request.url.path

    try:
        response = await call_next(request)
    except Exception as e:
        log_error(type(e).__name__, str(e), request_id)
        raise

    response.headers["X-Request-ID"] = request_id
    quiet = path in QUIET_PATHS or (path.endswith(QUIET_SUFFIXES) and response.status_code < 400)
    if not quiet:
        duration_ms = int((time.time() - start) * 1000)
        log_request(request.method, path, response.status_code, duration_ms, request_id)

    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(proctor_api.router)  # /api/proctoring


@app.on_event("startup")
async def startup_event():
    log_startup(settings.APP_NAME, settings.PORT, {
        "Reports": settings.REPORT_SERVICE_URL or settings.REPORTS_DB_URL,
        "YOLO weights": settings.YOLO_MODEL_PATH or "default",
        "No-face / look-away": f"{settings.PROCTOR_NO_FACE_SECONDS}s / {settings.PROCTOR_LOOK_AWAY_SECONDS}s",
        "Debug": settings.DEBUG,
    })


@app.on_event("shutdown")
async def shutdown_event():
    """Stop detector streams of sessions still in memory."""
    for session in list(proctor_api._sessions.values()):
        session.stop_streams(timeout=1.0)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": "1.0.0",
        "active_sessions": sum(1 for s in proctor_api._sessions.values() if s.is_active)
    }


@app.get("/")
async def root():
    return {
        "message": settings.APP_NAME,
        "docs": "/docs" if settings.DEBUG else "Disabled in production"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("interview_proctor.main:app", host=settings.HOST, port=settings.PORT)
