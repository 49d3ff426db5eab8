"""Разбор и проверка уведомления об оплате (query string notify URL)"""
import logging
import re
from collections import abc
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

from .notify_sign import SIGN_PARAM, verify_signature
from .pay_time import parse_time

logger = logging.getLogger(__name__)

CHARSET_GBK = "GBK"
CHARSET_UTF8 = "UTF-8"

SIGN_METHOD_MD5 = "MD5"
SIGN_METHOD_RSA = "RSA"

TRADE_MODE_IMMEDIATE = 1
TRADE_STATE_SUCCESS = 0
FEE_TYPE_CNY = 1

# Границы int64, как у платежной системы
_INT_MIN = -(2 ** 63)
_INT_MAX = 2 ** 63 - 1
_INT_RE = re.compile(r"[+-]?[0-9]+")


class NotifyDataError(Exception):
    """Базовая ошибка разбора уведомления"""
    pass


class InvalidInput(NotifyDataError):
    """Параметры отсутствуют"""
    pass


class MissingSignature(NotifyDataError):
    """Нет подписи sign"""
    pass


class SignatureMismatch(NotifyDataError):
    """Подпись не совпала"""
    pass


class MissingField(NotifyDataError):
    """Обязательное поле отсутствует или пустое"""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"{field} is empty")


class MalformedField(NotifyDataError):
    """Поле есть, но не разбирается как число или время"""

    def __init__(self, field: str, reason: str = ""):
        self.field = field
        self.reason = reason
        message = f"{field} is malformed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class InconsistentFees(NotifyDataError):
    """transport_fee + product_fee != total_fee"""
    pass


@dataclass(frozen=True)
class NotifyURLData:
    """
    Уведомление об успешной оплате (query string notify URL).

    Поле discount: если задано, то total_fee + discount == total_fee исходного
    счета. Здесь это не проверяется, исходный счет есть только у вызывающего.
    """
    # Протокольные параметры
    service_version: str
    charset: str
    signature: str
    sign_method: str
    sign_key_index: int

    # Бизнес-параметры
    notify_id: str
    trade_mode: int
    trade_state: int
    pay_info: str
    bank_billno: str
    transaction_id: str  # 28 цифр: 10 партнер + 8 дата + 10 порядковый номер
    time_end: datetime
    bank_type: str
    partner: str
    out_trade_no: str
    attach: str
    total_fee: int  # в фэнях
    discount: int
    transport_fee: int
    product_fee: int
    fee_type: int
    buyer_alias: str

    @property
    def is_success(self) -> bool:
        return self.trade_state == TRADE_STATE_SUCCESS

    @property
    def is_immediate(self) -> bool:
        return self.trade_mode == TRADE_MODE_IMMEDIATE


@dataclass(frozen=True)
class FieldRule:
    """Правило извлечения одного параметра"""
    param: str
    attr: str
    required: bool = False
    default: Any = ""
    kind: str = "str"  # str | int | time


PROTOCOL_FIELDS: Tuple[FieldRule, ...] = (
    FieldRule("service_version", "service_version", default="1.0"),
    FieldRule("input_charset", "charset", default=CHARSET_GBK),
    FieldRule("sign_type", "sign_method", default=SIGN_METHOD_MD5),
    FieldRule("sign_key_index", "sign_key_index", default=1, kind="int"),
)

BUSINESS_FIELDS: Tuple[FieldRule, ...] = (
    FieldRule("notify_id", "notify_id", required=True),
    FieldRule("trade_mode", "trade_mode", required=True, kind="int"),
    FieldRule("trade_state", "trade_state", required=True, kind="int"),
    FieldRule("pay_info", "pay_info"),
    FieldRule("bank_billno", "bank_billno"),
    FieldRule("transaction_id", "transaction_id", required=True),
    FieldRule("time_end", "time_end", required=True, kind="time"),
    FieldRule("bank_type", "bank_type", required=True),
    FieldRule("partner", "partner", required=True),
    FieldRule("out_trade_no", "out_trade_no", required=True),
    FieldRule("attach", "attach"),
    FieldRule("total_fee", "total_fee", required=True, kind="int"),
    FieldRule("discount", "discount", default=0, kind="int"),
    FieldRule("transport_fee", "transport_fee", default=0, kind="int"),
    FieldRule("product_fee", "product_fee", default=0, kind="int"),
    FieldRule("fee_type", "fee_type", required=True, kind="int"),
    FieldRule("buyer_alias", "buyer_alias"),
)


def parse_int(value: str) -> int:
    """
    Строгий разбор десятичного int64.

    int() принимает пробелы и подчеркивания, платежная система их не шлет,
    поэтому формат проверяется регулярным выражением.
    """
    if not _INT_RE.fullmatch(value):
        raise ValueError(f"invalid syntax: {value!r}")
    number = int(value)
    if number < _INT_MIN or number > _INT_MAX:
        raise ValueError(f"value out of range: {value!r}")
    return number


def _first_value(params: Mapping[str, Sequence[str]], name: str) -> str:
    """Первое значение параметра или "" если его нет"""
    values = params.get(name)
    if not values:
        return ""
    return values[0]


def _extract(
    rules: Sequence[FieldRule],
    params: Mapping[str, Sequence[str]],
    time_parser: Callable[[str], datetime],
) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for rule in rules:
        raw = _first_value(params, rule.param)
        if not raw:
            if rule.required:
                raise MissingField(rule.param)
            result[rule.attr] = rule.default
            continue

        if rule.kind == "int":
            try:
                result[rule.attr] = parse_int(raw)
            except ValueError as e:
                raise MalformedField(rule.param, str(e)) from e
        elif rule.kind == "time":
            try:
                result[rule.attr] = time_parser(raw)
            except Exception as e:
                # Ошибку внешнего парсера отдаем как есть
                raise MalformedField(rule.param, str(e)) from e
        else:
            result[rule.attr] = raw
    return result


def decode_notify_url_data(
    params: Optional[Mapping[str, Sequence[str]]],
    sign_key: str,
    time_parser: Callable[[str], datetime] = parse_time,
) -> NotifyURLData:
    """
    Проверить подпись и разобрать уведомление об оплате.

    Порядок:
    1. Проверка наличия параметров и подписи
    2. Проверка подписи (до чтения любых бизнес-полей)
    3. Протокольные поля со значениями по умолчанию
    4. Бизнес-поля по таблице BUSINESS_FIELDS
    5. Проверка transport_fee + product_fee == total_fee

    Параметры вызывающего не изменяются.

    None или не-mapping дает InvalidInput, как и значение-строка вместо
    списка значений. Пустой mapping дает MissingSignature.

    Args:
        params: Параметры query string: имя -> список значений
        sign_key: Ключ партнера (paySignKey)
        time_parser: Разбор time_end

    Returns:
        NotifyURLData

    Raises:
        NotifyDataError: Первая найденная ошибка (конкретный подкласс)
    """
    if params is None or not isinstance(params, abc.Mapping):
        raise InvalidInput(f"params must be a mapping, got {type(params).__name__}")
    for name, values in params.items():
        # str тоже Sequence, но перебирается по символам
        if isinstance(values, (str, bytes)):
            raise InvalidInput(f"{name} must be a list of values, got {type(values).__name__}")

    signature = _first_value(params, SIGN_PARAM)
    if not signature:
        raise MissingSignature("sign is empty")

    if not verify_signature(params, sign_key, signature):
        raise SignatureMismatch("signature verification failed")

    fields = _extract(PROTOCOL_FIELDS, params, time_parser)
    fields.update(_extract(BUSINESS_FIELDS, params, time_parser))

    transport_fee = fields["transport_fee"]
    product_fee = fields["product_fee"]
    if transport_fee != 0 or product_fee != 0:
        if transport_fee + product_fee != fields["total_fee"]:
            raise InconsistentFees(
                f"transport_fee+product_fee != total_fee: "
                f"{transport_fee}+{product_fee} != {fields['total_fee']}"
            )

    logger.debug(
        f"Notify data decoded: transaction_id={fields['transaction_id']}, "
        f"out_trade_no={fields['out_trade_no']}"
    )
    return NotifyURLData(signature=signature, **fields)
