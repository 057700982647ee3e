import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from database import init_db
from logging_config import setup_logging
from api.admin import router as admin_router
from api.agent import router as agent_router
from api.applications import router as applications_router
from api.call_queue import router as call_queue_router
from api.review import router as review_router
from api.site import router as site_router
from api.users import router as users_router
from services.errors import InvalidTransitionError, PortalError, ValidationError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level, settings.log_format)
    await init_db()
    logger.info("%s started", settings.app_name)
    yield


app = FastAPI(
    title=settings.app_name,
    description="Letter application workflow API: submission, payment, call queue, agent work, doctor review and verification",
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


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    body = {"detail": exc.message, "error": type(exc).__name__}
    if isinstance(exc, ValidationError) and exc.missing:
        body["missing"] = exc.missing
    if isinstance(exc, InvalidTransitionError) and exc.current_status:
        body["currentStatus"] = exc.current_status
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=body)


app.include_router(applications_router)
app.include_router(agent_router)
app.include_router(admin_router)
app.include_router(review_router)
app.include_router(call_queue_router)
app.include_router(site_router)
app.include_router(users_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
