import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from src.api.error import ClientError
from src.api.routes import admin, payments, payouts, points, webhooks

logger = logging.getLogger(__name__)


def create_app(config) -> FastAPI:
    logging.basicConfig(level=getattr(logging, str(config.LOG_LEVEL).upper(), logging.INFO))

    app = FastAPI(title="Cast Payout Service", version="1.0.0")

    if config.CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.CORS_ORIGINS,
            allow_credentials=config.CORS_ALLOW_CREDENTIALS,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(ClientError)
    async def client_error_handler(request: Request, exc: ClientError):
        logger.warning(
            f"{request.method} {request.url.path} -> {exc.status_code} "
            f"{exc.error.code}: {exc.error.reason or exc.error.message}"
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok"}

    for module in (points, payouts, payments, admin, webhooks):
        app.include_router(module.router, prefix=config.API_PREFIX)

    return app
