# storefront/main.py
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import uvicorn

from storefront.api.deps import rate_limit
from storefront.api.routers import cart, checkout, health, orders, products, users
from storefront.data.database import init_db
from storefront.domain.errors import InternalError, StorefrontError
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Initializing database")
    try:
        init_db()
    except Exception:
        logger.exception("Failed to create tables")
        raise
    yield


async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "Internal server error", "code": exc.code},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "code": exc.code, "details": exc.details},
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = {
        ".".join(str(p) for p in err["loc"] if p != "body"): err["msg"]
        for err in exc.errors()
    }
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "code": "VALIDATION_ERROR", "details": {"fields": fields}},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=InternalError.status_code,
        content={"error": "Internal server error", "code": InternalError.code},
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Storefront API",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_exception_handler(StorefrontError, storefront_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = (time.perf_counter() - started) * 1000
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed:.1f} ms)")
        return response

    # Include routers
    limited = [Depends(rate_limit)]
    app.include_router(health.router)
    app.include_router(users.router, dependencies=limited)
    app.include_router(products.router, dependencies=limited)
    app.include_router(cart.router, dependencies=limited)
    app.include_router(checkout.router, dependencies=limited)
    app.include_router(orders.router, dependencies=limited)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
