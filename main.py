import logging
from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from config.settings import settings
from service import router as api_router
from routes.views import router as views_router
from routes.occurrences import router as occurrences_router
from routes.admin import router as admin_router
from database import create_tables
from limiter import limiter
from logging_config import configure_logging
from utils.error_handler import SchedulerError, scheduler_error_handler

configure_logging()
logger = logging.getLogger("app")

allowed_origins = settings.cors_origins()
logger.info(f"CORS allowed origins: {allowed_origins}")

app = FastAPI(title="Scheduler Backend")
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(SchedulerError, scheduler_error_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"Incoming request: {request.method} {request.url}")
    response = await call_next(request)
    logger.info(f"Response status: {response.status_code}")
    return response

@app.on_event("startup")
async def on_startup():
    create_tables()
    logger.info("Application started successfully")

@app.get("/")
@limiter.limit(settings.RATE_LIMIT)
async def read_root(request: Request):
    """A simple health check endpoint."""
    return {"status": "ok"}

@app.get("/health")
async def health_check():
    """Health check endpoint for Kubernetes probes."""
    return {"status": "ok", "service": "scheduler-backend"}

app.include_router(api_router, prefix="/api")
app.include_router(views_router, prefix="/api")
app.include_router(occurrences_router, prefix="/api")
app.include_router(admin_router, prefix="/api")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
