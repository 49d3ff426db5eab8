"""Проверка и разбор уведомлений об оплате (notify URL)"""

__version__ = "1.0.0"
