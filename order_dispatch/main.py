from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from order_dispatch.core.logging import bind_context, clear_context, configure_logging, logger
from order_dispatch.api.v1.router import api_router
from order_dispatch.config import settings
from order_dispatch.database import engine, Base
from order_dispatch.core.exception import AppException
import order_dispatch.models  # noqa: F401  registers every table on Base
import time
import uuid

# Configure logging
configure_logging()

@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info("Starting order dispatch service")
    yield
    logger.info("Shutting down order dispatch service")

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Order lifecycle, courier dispatch and live delivery tracking",
    version="1.0.0",
    lifespan=lifespan
)

# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    bind_context(request_id=request_id)

    logger.info(
        "Request started",
        method=request.method,
        url=str(request.url),
        client_ip=request.client.host if request.client else None
    )

    response = await call_next(request)

    process_time = time.time() - start_time
    logger.info(
        "Request completed",
        method=request.method,
        url=str(request.url),
        status_code=response.status_code,
        process_time=round(process_time, 4)
    )
    response.headers["X-Request-ID"] = request_id
    clear_context()

    return response

def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message
            }
        }
    )

@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    logger.error(
        "Application exception",
        error=exc.message,
        code=exc.code,
        url=str(request.url)
    )

    return error_response(exc.status_code, exc.code, exc.message)

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    message = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    logger.error(
        "Invalid request",
        error=message,
        url=str(request.url)
    )

    return error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, "INVALID_INPUT", message)

# Include API routes
app.include_router(api_router, prefix="/api/v1")

# Health check
@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": "order-dispatch",
        "version": "1.0.0"
    }
