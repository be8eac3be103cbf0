import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from coinfolio.api.routes import router
from coinfolio.config.settings import Settings, settings as default_settings
from coinfolio.providers.base import UpstreamClient
from coinfolio.services import build_services

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]


def create_app(
    settings: Settings | None = None, upstream: UpstreamClient | None = None
) -> FastAPI:
    settings = settings or default_settings

    # Startup builds the owned services; shutdown closes the upstream client.
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting coinfolio (currency=%s)", settings.upstream.vs_currency)
        services = build_services(settings, upstream=upstream)
        app.state.services = services
        try:
            yield
        finally:
            await services.close()
            logger.info("Coinfolio stopped")

    app = FastAPI(title="Coinfolio", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.include_router(router)
    return app


def run() -> None:
    configure_logging(default_settings.log_level)
    uvicorn.run(create_app(), host=default_settings.host, port=default_settings.port)


if __name__ == "__main__":
    run()
