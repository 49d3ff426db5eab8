"""
Общие фикстуры для тестов notify URL
"""
import pytest

from tenpay_notify.api.middleware.rate_limit import limiter
from tenpay_notify.utils.notify_sign import sign_params

TEST_SIGN_KEY = "secret"


def make_base_params():
    """Корректное уведомление без подписи (пример из протокола)"""
    return {
        "out_trade_no": ["T1"],
        "partner": ["P1"],
        "bank_type": ["WX"],
        "transaction_id": ["1234567890200901010000000001"],
        "time_end": ["20090101000000"],
        "notify_id": ["N1"],
        "trade_mode": ["1"],
        "trade_state": ["0"],
        "total_fee": ["100"],
        "fee_type": ["1"],
    }


def signed(params, key=TEST_SIGN_KEY):
    """Копия params с добавленной подписью"""
    result = {k: list(v) for k, v in params.items()}
    result["sign"] = [sign_params(result, key)]
    return result


@pytest.fixture
def sign_key():
    """Фикстура для тестового ключа партнера"""
    return TEST_SIGN_KEY


@pytest.fixture
def base_params():
    """Фикстура для параметров уведомления без подписи"""
    return make_base_params()


@pytest.fixture
def signed_params(base_params):
    """Фикстура для корректно подписанного уведомления"""
    return signed(base_params)


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Сбрасываем счетчики rate limiter между тестами"""
    limiter.reset()
    yield
