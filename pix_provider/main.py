import json
import logging
import logging.config
from contextlib import asynccontextmanager
from typing import Optional
import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from pix_provider import database
from pix_provider.auth import require_api_token
from pix_provider.codegen import Merchant, PixCodeGenerator
from pix_provider.config import Settings
from pix_provider.errors import ProviderError, ValidationError
from pix_provider.lifecycle import PaymentLifecycleEngine
from pix_provider.notifier import WebhookNotifier
from pix_provider.repository import PaymentRepository
from pix_provider.schemas import PaymentCreate
from pix_provider.store import JsonFileStore, SqlBlobStore

logger = logging.getLogger("pix_provider")


def configure_logging(level: str) -> None:
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
            },
        },
        "root": {"handlers": ["console"], "level": level},
        "loggers": {
            "uvicorn": {"level": level},
            "uvicorn.error": {"level": level},
            "uvicorn.access": {"level": level},
            "httpx": {"level": "WARNING"},
        },
    })


def build_engine(settings: Settings) -> PaymentLifecycleEngine:
    store = SqlBlobStore() if settings.database_url else JsonFileStore(settings.data_file)
    return PaymentLifecycleEngine(
        repository=PaymentRepository(store, strict=settings.strict_persistence),
        code_generator=PixCodeGenerator(),
        notifier=WebhookNotifier(settings.webhook_url, settings.webhook_timeout),
        merchant=Merchant(settings.pix_key, settings.pix_name, settings.pix_city),
    )


def log_banner(settings: Settings) -> None:
    logger.info("-" * 74)
    logger.info("PIX Test Provider v0.1")
    logger.info(f"Server running on: http://localhost:{settings.port}")
    logger.info(f"API token: {settings.api_token}")
    logger.info(f"Webhook URL: {settings.webhook_url}")
    logger.info("-" * 74)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    engine: PaymentLifecycleEngine = app.state.engine
    if settings.database_url:
        database.configure(settings.database_url)
        await database.init_db()
    await engine.repository.load()
    log_banner(settings)
    yield
    # Let in-flight webhook deliveries finish before exiting
    await engine.notifier.drain()
    if settings.database_url:
        await database.dispose()


def get_engine(request: Request) -> PaymentLifecycleEngine:
    return request.app.state.engine


router = APIRouter()


@router.post("/create", status_code=201, dependencies=[Depends(require_api_token)])
async def create_payment(payload: PaymentCreate, engine: PaymentLifecycleEngine = Depends(get_engine)):
    payment = await engine.create_payment(payload.value, payload.expires_in, payload.description)
    return {"status": True, "data": payment.to_record()}


@router.post("/simulate/{payment_id}", dependencies=[Depends(require_api_token)])
async def simulate_payment(payment_id: str, engine: PaymentLifecycleEngine = Depends(get_engine)):
    paid = await engine.simulate_payment(payment_id)
    return {"status": True, "data": paid.model_dump(mode="json")}


@router.get("/payment/{payment_id}", dependencies=[Depends(require_api_token)])
async def get_payment(payment_id: str, engine: PaymentLifecycleEngine = Depends(get_engine)):
    payment = engine.get_payment(payment_id)
    return {"status": True, "data": payment.model_dump(mode="json", exclude_none=True)}


@router.post("/webhook")
async def webhook_echo(request: Request):
    body = await request.body()
    if not body.strip():
        payload = {}
    else:
        try:
            payload = json.loads(body)
        except ValueError as e:
            raise ValidationError() from e
    return {"status": True, "data": PaymentLifecycleEngine.echo_webhook(payload)}


async def provider_error_handler(request: Request, exc: ProviderError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__}: {exc.message}")
        error = {"name": type(exc).__name__, "message": exc.message}
    else:
        error = exc.message
    return JSONResponse(status_code=exc.status_code, content={"status": False, "error": error})


async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.debug(f"Rejected request to {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"status": False, "error": ValidationError.message})


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def create_app(settings: Optional[Settings] = None, engine: Optional[PaymentLifecycleEngine] = None) -> FastAPI:
    """App factory. Without explicit settings it reads the environment and configures logging."""
    if settings is None:
        settings = Settings.from_env()
        configure_logging(settings.log_level)
    app = FastAPI(title="PIX Test Provider", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine or build_engine(settings)

    app.add_exception_handler(ProviderError, provider_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.include_router(router)
    return app


def main():
    app = create_app()
    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port, log_config=None)


if __name__ == "__main__":
    main()
