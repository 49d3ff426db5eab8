import logging
from typing import Dict, Iterable, List, Tuple
from urllib.parse import parse_qsl
from fastapi import Request, HTTPException
from fastapi.responses import PlainTextResponse

from tenpay_notify.config.settings import PAY_SIGN_KEY, PAY_TIMEZONE, NOTIFY_IP_CHECK_ENABLED
from tenpay_notify.api.middleware.source_ip_check import verify_source_ip
from tenpay_notify.utils.notify_data import (
    NotifyDataError,
    SignatureMismatch,
    decode_notify_url_data,
)
from tenpay_notify.utils.pay_time import parse_time

logger = logging.getLogger(__name__)

# Ответы, которые ожидает платежная система
RESPONSE_SUCCESS = "success"
RESPONSE_FAIL = "fail"

# Глобальная переменная для пересылки результатов (устанавливается из server.py)
forwarder_instance = None


def set_forwarder_instance(instance):
    """Установить экземпляр ResultForwarder"""
    global forwarder_instance
    forwarder_instance = instance


def collect_params(items: Iterable[Tuple[str, str]]) -> Dict[str, List[str]]:
    """
    Собрать пары key=value в multi-map с сохранением порядка значений

    Args:
        items: Пары (ключ, значение) в порядке поступления

    Returns:
        Словарь: имя параметра -> список значений
    """
    params: Dict[str, List[str]] = {}
    for key, value in items:
        params.setdefault(key, []).append(value)
    return params


def _pay_time(value: str):
    return parse_time(value, PAY_TIMEZONE)


async def pay_notify(request: Request):
    """
    Notify URL: уведомление платежной системы о результате оплаты

    Параметры берутся из query string; для POST сначала тело
    application/x-www-form-urlencoded, затем query string.
    Ответ "success" останавливает повторную доставку, "fail" - нет.
    """
    client_ip = request.client.host if request.client else "unknown"

    if NOTIFY_IP_CHECK_ENABLED:
        await verify_source_ip(request)

    if not PAY_SIGN_KEY:
        logger.error("PAY_SIGN_KEY не настроен! Уведомления не могут быть проверены!")
        raise HTTPException(status_code=500, detail="Pay sign key not configured")

    items: List[Tuple[str, str]] = []
    if request.method == "POST":
        body = await request.body()
        items.extend(parse_qsl(body.decode("utf-8", errors="replace"), keep_blank_values=True))
    items.extend(request.query_params.multi_items())
    params = collect_params(items)

    try:
        data = decode_notify_url_data(params, PAY_SIGN_KEY, time_parser=_pay_time)
    except SignatureMismatch:
        received = (params.get("sign") or [""])[0]
        logger.warning(
            f"Notify signature mismatch from IP: {client_ip}, "
            f"received sign: {received[:10]}..."
        )
        return PlainTextResponse(RESPONSE_FAIL, status_code=400)
    except NotifyDataError as e:
        logger.warning(f"Invalid notify from IP {client_ip}: {type(e).__name__}: {e}")
        return PlainTextResponse(RESPONSE_FAIL, status_code=400)

    logger.info(
        f"Notify verified: transaction_id={data.transaction_id}, "
        f"out_trade_no={data.out_trade_no}, trade_state={data.trade_state}, "
        f"total_fee={data.total_fee}, IP={client_ip}"
    )

    if forwarder_instance:
        await forwarder_instance.forward(data)
    else:
        logger.warning(
            f"Forwarder not initialized, notification dropped after logging: "
            f"transaction_id={data.transaction_id}"
        )

    return PlainTextResponse(RESPONSE_SUCCESS)
