import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from database import init_db
from api.applications import router as applications_router
from api.dashboard import router as dashboard_router
from api.receipts import router as receipts_router
from services.errors import LoanServiceError, ValidationFailed
from utils.case import dict_keys_to_camel

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info("%s started", settings.app_name)
    yield


app = FastAPI(
    title=settings.app_name,
    description="Loan origination workflow and OR/CR receipting API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LoanServiceError)
async def loan_service_error_handler(request: Request, exc: LoanServiceError):
    body = exc.to_dict()
    if isinstance(exc, ValidationFailed):
        body["errors"] = dict_keys_to_camel(exc.errors)
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=body)


app.include_router(applications_router)
app.include_router(receipts_router)
app.include_router(dashboard_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
