"""Каноническая строка и MD5-подпись параметров notify URL"""
import hashlib
import hmac
import logging
from typing import Iterable, Mapping, Sequence, Tuple

logger = logging.getLogger(__name__)

SIGN_PARAM = "sign"
KEY_PARAM = "key"


def _snapshot(params: Mapping[str, Sequence[str]]) -> Tuple[Tuple[str, Tuple[str, ...]], ...]:
    """Неизменяемая копия параметров без ключа sign, отсортированная по ключу"""
    return tuple(
        (key, tuple(params[key]))
        for key in sorted(params)
        if key != SIGN_PARAM
    )


def _pairs(snapshot) -> Iterable[str]:
    for key, values in snapshot:
        # Значения одного ключа идут в порядке поступления, без сортировки
        for value in values:
            yield f"{key}={value}"


def build_sign_string(params: Mapping[str, Sequence[str]], sign_key: str) -> bytes:
    """
    Построить каноническую строку для подписи.

    Алгоритм:
    1. Исключить параметр sign (исходный mapping не изменяется)
    2. Отсортировать ключи по возрастанию (побайтово, без учета локали)
    3. Для каждого ключа и каждого его значения добавить key=value через &
    4. Добавить в конец &key=<sign_key>

    Значения должны быть списками: строка вместо списка перебирается по
    символам (decode_notify_url_data такие параметры отклоняет).

    Args:
        params: Параметры query string: имя -> список значений
        sign_key: Ключ партнера (paySignKey)

    Returns:
        Каноническая строка в UTF-8
    """
    parts = list(_pairs(_snapshot(params)))
    parts.append(f"{KEY_PARAM}={sign_key}")
    return "&".join(parts).encode("utf-8")


def sign_params(params: Mapping[str, Sequence[str]], sign_key: str) -> str:
    """
    Вычислить подпись параметров: MD5 от канонической строки, hex в верхнем регистре.

    Args:
        params: Параметры query string: имя -> список значений
        sign_key: Ключ партнера

    Returns:
        Подпись из 32 символов [0-9A-F]
    """
    return hashlib.md5(build_sign_string(params, sign_key)).hexdigest().upper()


def verify_signature(
    params: Mapping[str, Sequence[str]],
    sign_key: str,
    signature: str
) -> bool:
    """
    Проверить подпись за постоянное время (с учетом регистра).

    Args:
        params: Параметры query string (sign, если есть, игнорируется)
        sign_key: Ключ партнера
        signature: Полученная подпись

    Returns:
        True если подпись совпадает
    """
    expected = sign_params(params, sign_key)
    # hmac.compare_digest на str падает на не-ASCII, поэтому сравниваем байты;
    # surrogatepass: одиночный суррогат дает обычное несовпадение
    is_valid = hmac.compare_digest(signature.encode("utf-8", "surrogatepass"), expected.encode("ascii"))
    if not is_valid:
        logger.debug(
            f"Signature mismatch: received={signature[:8]}..., "
            f"calculated={expected[:8]}..."
        )
    return is_valid
