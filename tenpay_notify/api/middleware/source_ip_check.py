"""Проверка IP-адреса источника уведомлений"""
import ipaddress
import logging
from typing import Sequence, Union
from fastapi import HTTPException, Request

from tenpay_notify.config.settings import NOTIFY_ALLOWED_NETWORKS

logger = logging.getLogger(__name__)

Network = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


def is_allowed_ip(ip: str, networks: Sequence[Network]) -> bool:
    """
    Проверяет, принадлежит ли IP-адрес одному из разрешенных диапазонов

    Args:
        ip: IP-адрес для проверки
        networks: Диапазоны, уже разобранные settings.parse_networks

    Returns:
        True если IP входит в один из диапазонов
    """
    try:
        ip_obj = ipaddress.ip_address(ip)
    except ValueError:
        logger.warning(f"Invalid client IP address: {ip}")
        return False
    return any(ip_obj in network for network in networks)


async def verify_source_ip(request: Request) -> bool:
    """
    Проверяет, что уведомление пришло с разрешенного адреса.

    Raises:
        HTTPException: 403 если IP не из разрешенных диапазонов
    """
    client_ip = request.client.host if request.client else None

    if not client_ip:
        logger.warning("Unable to determine client IP for notify request")
        raise HTTPException(status_code=403, detail="Unable to determine client IP")

    if not is_allowed_ip(client_ip, NOTIFY_ALLOWED_NETWORKS):
        logger.warning(f"Notify request from unauthorized IP: {client_ip}")
        raise HTTPException(status_code=403, detail="Forbidden: IP not allowed")

    return True
