"""Разбор времени платежной системы (формат yyyyMMddHHmmss, пекинское время)"""
import re
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

PAY_TIME_FORMAT = "%Y%m%d%H%M%S"
DEFAULT_TIMEZONE = "Asia/Shanghai"

# strptime допускает однозначные поля, поэтому длину проверяем отдельно
_PAY_TIME_RE = re.compile(r"[0-9]{14}")


def parse_time(value: str, tz_name: Optional[str] = None) -> datetime:
    """
    Разобрать строку вида 20090415123055 в aware datetime.

    Args:
        value: Строка времени
        tz_name: Часовой пояс (по умолчанию Asia/Shanghai)

    Returns:
        datetime с tzinfo

    Raises:
        ValueError: Если строка не соответствует формату
    """
    if not _PAY_TIME_RE.fullmatch(value):
        raise ValueError(f"invalid pay time {value!r}: expected 14 digits yyyyMMddHHmmss")
    parsed = datetime.strptime(value, PAY_TIME_FORMAT)
    return parsed.replace(tzinfo=ZoneInfo(tz_name or DEFAULT_TIMEZONE))


def format_time(value: datetime, tz_name: Optional[str] = None) -> str:
    """Обратная операция к parse_time"""
    if value.tzinfo is not None:
        value = value.astimezone(ZoneInfo(tz_name or DEFAULT_TIMEZONE))
    return value.strftime(PAY_TIME_FORMAT)
