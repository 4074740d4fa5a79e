import logging
from datetime import datetime
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hrms.api.v1 import api as v1_api
from hrms.core.config import settings
from hrms.core.exceptions import Conflict, HRMSError, InvalidInput, NotFound
from hrms.database import create_tables, engine

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("hrms")


# --- LIFESPAN ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"[HRMS] Starting {settings.PROJECT_NAME}")
    await create_tables(engine)

    yield

    logger.info("[HRMS] Shutting down")
    await engine.dispose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    lifespan=lifespan,
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- DOMAIN ERRORS -> HTTP ---
_STATUS_BY_ERROR = (
    (NotFound, 404),
    (InvalidInput, 400),
    (Conflict, 409),
)

@app.exception_handler(HRMSError)
async def hrms_error_handler(request: Request, exc: HRMSError):
    status_code = 500
    for error_cls, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            status_code = code
            break
    if status_code == 500:
        logger.error(f"[HRMS] {request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": exc.message or str(exc)})


@app.get("/health", tags=["Health"])
async def health():
    return {
        "status": "OK",
        "message": "HRMS API is running",
        "timestamp": datetime.now().isoformat(),
    }


app.include_router(
    v1_api.api_router,
    prefix="/api/v1",
)
