from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
import time
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError

from tgdating.core.config import settings
from tgdating.core.db import init_db
from tgdating.core.logging_config import configure_logging
from tgdating.routers import auth, matches, messages, realtime, users

logger = structlog.get_logger("tgdating")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging()
    init_db()
    logger.info("startup_complete", env=settings.env)
    yield


app = FastAPI(title=f"{settings.app_name} API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=uuid4().hex[:12])
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "request_completed",
        method=request.method,
        path=request.url.path,
        status=response.status_code,
        duration_ms=round((time.perf_counter() - started) * 1000, 2),
    )
    return response


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(
        "storage_error",
        path=request.url.path,
        error=exc.__class__.__name__,
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "detail": {
                "code": "storage_unavailable",
                "message": "Storage is temporarily unavailable.",
            }
        },
    )


@app.get("/", include_in_schema=False)
def root() -> RedirectResponse:
    return RedirectResponse(url="/docs")  # Redirect the homepage to the Swagger UI


@app.get("/healthz")
def healthz() -> dict[str, bool]:
    return {"ok": True}


# Register routers
app.include_router(auth.router, prefix=settings.api_v1_str)
app.include_router(users.router, prefix=settings.api_v1_str)
app.include_router(matches.router, prefix=settings.api_v1_str)
app.include_router(messages.router, prefix=settings.api_v1_str)
app.include_router(realtime.router, prefix=settings.api_v1_str)
