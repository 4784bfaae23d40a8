# agencyos/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from agencyos.api.v1 import api_router
from agencyos.core.config import settings
from agencyos.core.database import mongo_manager, redis_manager
from agencyos.core.logging_config import add_trace_id_middleware, setup_logging, trace_id_var
from agencyos.core.rate_limit import limiter
from agencyos.modules.whatsapp.poller import qr_poller


async def generic_exception_handler(request: Request, exc: Exception):
    logger.bind(trace_id=trace_id_var.get()).exception(f"Unhandled Exception: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error."})


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.PROJECT_NAME}...")
    try:
        await mongo_manager.connect()
    except ConnectionError:
        logger.critical("API started without MongoDB; data endpoints will answer 503.")
    await redis_manager.connect()
    yield
    logger.info("Shutting down...")
    await qr_poller.close()
    await redis_manager.disconnect()
    await mongo_manager.disconnect()


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan,
        exception_handlers={
            RateLimitExceeded: _rate_limit_exceeded_handler,
            Exception: generic_exception_handler,
        },
    )
    app.state.limiter = limiter

    app.add_middleware(SlowAPIMiddleware)
    app.middleware("http")(add_trace_id_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_ORIGIN],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=settings.API_V1_STR)

    @app.get("/", include_in_schema=False)
    async def read_root():
        return {"status": "ok", "project": settings.PROJECT_NAME}

    return app


app = create_app()
