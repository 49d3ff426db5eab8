import asyncio
import logging
import sys
from logging.handlers import RotatingFileHandler

from tenpay_notify.config.settings import LOG_FILE_PATH, PAY_SIGN_KEY

logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=logging.INFO,
    handlers=[
        logging.StreamHandler(),
        RotatingFileHandler(LOG_FILE_PATH, maxBytes=1_000_000, backupCount=3)
    ]
)

logger = logging.getLogger(__name__)


async def main():
    """Запуск API сервера приёма уведомлений"""
    from tenpay_notify.api.server import run_api_server

    logger.info("Запуск Tenpay Notify API")
    if not PAY_SIGN_KEY:
        logger.warning("PAY_SIGN_KEY не задан: все уведомления будут отклонены")

    await run_api_server()


if __name__ == '__main__':
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Прервано пользователем")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Критическая ошибка: {e}", exc_info=True)
        sys.exit(1)
