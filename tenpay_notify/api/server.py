import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from pydantic import BaseModel
from slowapi.errors import RateLimitExceeded

from tenpay_notify import __version__
from tenpay_notify.api.routes.notify import pay_notify, set_forwarder_instance
from tenpay_notify.api.middleware.rate_limit import limiter, _rate_limit_exceeded_handler
from tenpay_notify.config.settings import (
    NOTIFY_PATH,
    NOTIFY_RATE_LIMIT,
    MERCHANT_WEBHOOK_URL,
    MERCHANT_WEBHOOK_SECRET,
    MERCHANT_WEBHOOK_TIMEOUT,
    MERCHANT_WEBHOOK_MAX_ATTEMPTS,
)
from tenpay_notify.services.result_forwarder import ResultForwarder

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Запуск и остановка ResultForwarder вместе с приложением"""
    forwarder = ResultForwarder(
        webhook_url=MERCHANT_WEBHOOK_URL,
        shared_secret=MERCHANT_WEBHOOK_SECRET,
        timeout_seconds=MERCHANT_WEBHOOK_TIMEOUT,
        max_attempts=MERCHANT_WEBHOOK_MAX_ATTEMPTS,
    )
    await forwarder.start()
    set_forwarder_instance(forwarder)
    try:
        yield
    finally:
        set_forwarder_instance(None)
        await forwarder.stop()


app = FastAPI(
    title="Tenpay Notify API",
    description="Приём и проверка уведомлений об оплате (notify URL)",
    version=__version__,
    lifespan=lifespan,
)

# Настройка rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Логирует все входящие HTTP запросы"""
    client_ip = request.client.host if request.client else "unknown"
    logger.info(f"Incoming request: {request.method} {request.url.path} from IP: {client_ip}")

    try:
        response = await call_next(request)
        logger.info(f"Response: {request.method} {request.url.path} - {response.status_code}")
        return response
    except Exception as e:
        logger.error(f"Error handling request {request.method} {request.url.path}: {e}", exc_info=True)
        raise


@app.api_route(NOTIFY_PATH, methods=["GET", "POST"], tags=["notify"])
@limiter.limit(NOTIFY_RATE_LIMIT)
async def notify_endpoint(request: Request):
    """Notify URL для уведомлений платежной системы"""
    return await pay_notify(request)


@app.get("/", tags=["info"])
async def root():
    """Корневой эндпоинт с информацией об API"""
    return {
        "service": "Tenpay Notify API",
        "version": __version__,
        "docs": "/docs",
        "redoc": "/redoc"
    }


class HealthResponse(BaseModel):
    """Ответ health endpoint"""
    status: str
    notify_path: str
    forwarder: str
    forwarding_enabled: bool
    queue_size: int = 0


@app.get("/health", response_model=HealthResponse, tags=["info"])
async def health():
    """Проверка работоспособности сервера"""
    from tenpay_notify.api.routes.notify import forwarder_instance
    queue_size = await forwarder_instance.get_queue_size() if forwarder_instance else 0
    return HealthResponse(
        status="ok",
        notify_path=NOTIFY_PATH,
        forwarder="initialized" if forwarder_instance else "not initialized",
        forwarding_enabled=bool(forwarder_instance and forwarder_instance.enabled),
        queue_size=queue_size,
    )


async def run_api_server():
    """Запуск API сервера"""
    import uvicorn
    from tenpay_notify.config.settings import API_PORT
    config = uvicorn.Config(
        app,
        host="0.0.0.0",
        port=API_PORT,
        log_level="info"
    )
    server = uvicorn.Server(config)
    await server.serve()
