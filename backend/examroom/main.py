from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
import logging
import psutil

from examroom.core.config import settings
from examroom.core.database import AsyncSessionLocal, create_db_and_tables
from examroom.core.cache import cache
from examroom.core.exceptions import ActiveSessionElsewhere, ExamSessionError
from examroom.api.v1.api import api_router
from examroom.middleware.performance import PerformanceMiddleware
from examroom.middleware.timezone import TimezoneMiddleware
from examroom.services.registry import registry
from examroom.utils.timezone import get_local_now

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"
is_development = settings.environment == "development"

app = FastAPI(
    title="Exam Room API",
    description="Timed, proctored exam sessions for students",
    version=VERSION,
    docs_url="/docs" if is_development else None,
    redoc_url="/redoc" if is_development else None
)

# Last added runs outermost, so CORS sees every response.
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(TimezoneMiddleware)
app.add_middleware(PerformanceMiddleware, slow_request_threshold=settings.slow_request_threshold)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ExamSessionError)
async def exam_session_exception_handler(request: Request, exc: ExamSessionError):
    content = {"detail": exc.message}
    if isinstance(exc, ActiveSessionElsewhere):
        # Lets the client offer a jump to the exam that is still running.
        content["active_session"] = {
            "session_id": exc.session_id,
            "exam_id": exc.exam_id,
            "exam_code": exc.exam_code,
        }
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Something went wrong while handling the exam request.",
            "request_id": getattr(request.state, 'request_id', 'unknown')
        }
    )


@app.on_event("startup")
async def startup_event():
    logger.info(f"Exam Room API {VERSION} starting ({settings.environment})")
    await create_db_and_tables()

    if await cache.ahealth_check():
        logger.info("Question cache available")
    else:
        logger.warning("Question cache unavailable, every load reads the database")


@app.on_event("shutdown")
async def shutdown_event():
    """Stop every live exam controller before the loop goes away."""
    open_sessions = len(registry)
    await registry.close_all()
    logger.info(f"Closed {open_sessions} exam controllers")

    try:
        await cache.aclose()
    except Exception as e:
        logger.error(f"Error closing cache connection: {e}")


app.include_router(api_router, prefix="/api/v1")


async def _database_status() -> str:
    try:
        async with AsyncSessionLocal() as db:
            await db.execute(text("SELECT 1"))
        return "healthy"
    except Exception as e:
        return f"error: {e}"


def _system_usage() -> dict:
    return {
        "cpu_percent": psutil.cpu_percent(),
        "memory_percent": psutil.virtual_memory().percent,
        "disk_percent": psutil.disk_usage('/').percent
    }


@app.get("/health")
async def health_check():
    """Service health plus the number of exam controllers held in memory."""
    database = await _database_status()
    return {
        "status": "healthy" if database == "healthy" else "unhealthy",
        "timestamp": get_local_now().isoformat(),
        "version": VERSION,
        "active_controllers": len(registry),
        "services": {
            "database": database,
            "cache": "healthy" if await cache.ahealth_check() else "unavailable",
        },
        "system": _system_usage(),
    }


@app.get("/")
async def read_root():
    return {"message": "Exam Room API", "version": VERSION}
