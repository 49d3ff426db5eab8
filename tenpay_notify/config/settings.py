import ipaddress
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Корень проекта (2 уровня выше от tenpay_notify/config/settings.py)
PROJECT_ROOT = Path(__file__).parent.parent.parent


def parse_networks(raw):
    """
    Разбирает список CIDR через запятую.

    Raises:
        ValueError: Некорректный CIDR (с указанием записи)
    """
    networks = []
    for entry in (raw or '').split(','):
        entry = entry.strip()
        if not entry:
            continue
        try:
            networks.append(ipaddress.ip_network(entry, strict=False))
        except ValueError as e:
            raise ValueError(f"Invalid network in NOTIFY_ALLOWED_NETWORKS: {entry!r}: {e}") from e
    return networks


# Ключ партнера для проверки подписи уведомлений (paySignKey)
PAY_SIGN_KEY = os.getenv('PAY_SIGN_KEY')
PAY_TIMEZONE = os.getenv('PAY_TIMEZONE', 'Asia/Shanghai')

# Логи
LOG_FILE_PATH = os.getenv('LOG_FILE_PATH', 'logs/notify.log')
# Создаем директорию для логов, если она не существует
_log_path = Path(LOG_FILE_PATH)
if not _log_path.is_absolute():
    _log_path = PROJECT_ROOT / _log_path
_log_dir = _log_path.parent
if _log_dir != PROJECT_ROOT:
    _log_dir.mkdir(parents=True, exist_ok=True)
# Абсолютный путь для RotatingFileHandler
LOG_FILE_PATH = str(_log_path)

# Notify endpoint
NOTIFY_PATH = os.getenv('NOTIFY_PATH', '/api/pay/notify')
NOTIFY_RATE_LIMIT = os.getenv('NOTIFY_RATE_LIMIT', '100/minute')
NOTIFY_IP_CHECK_ENABLED = os.getenv('NOTIFY_IP_CHECK_ENABLED', 'false').lower() == 'true'
# Разбираются при загрузке: некорректный CIDR останавливает запуск
NOTIFY_ALLOWED_NETWORKS = parse_networks(os.getenv('NOTIFY_ALLOWED_NETWORKS'))
API_PORT = int(os.getenv('API_PORT', '80'))

# Пересылка разобранных уведомлений в backend мерчанта
MERCHANT_WEBHOOK_URL = os.getenv('MERCHANT_WEBHOOK_URL')
MERCHANT_WEBHOOK_SECRET = os.getenv('MERCHANT_WEBHOOK_SECRET')
MERCHANT_WEBHOOK_TIMEOUT = int(os.getenv('MERCHANT_WEBHOOK_TIMEOUT', '10'))
MERCHANT_WEBHOOK_MAX_ATTEMPTS = int(os.getenv('MERCHANT_WEBHOOK_MAX_ATTEMPTS', '3'))
