# Config package
from .settings import (
    PAY_SIGN_KEY,
    PAY_TIMEZONE,
    LOG_FILE_PATH,
    NOTIFY_PATH,
    NOTIFY_RATE_LIMIT,
    API_PORT,
    MERCHANT_WEBHOOK_URL,
)

__all__ = [
    'PAY_SIGN_KEY',
    'PAY_TIMEZONE',
    'LOG_FILE_PATH',
    'NOTIFY_PATH',
    'NOTIFY_RATE_LIMIT',
    'API_PORT',
    'MERCHANT_WEBHOOK_URL',
]
