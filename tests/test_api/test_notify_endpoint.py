"""
Тесты для notify URL endpoint
"""
import pytest
from unittest.mock import Mock, AsyncMock, patch
from urllib.parse import urlencode
from httpx import AsyncClient, ASGITransport

from tenpay_notify.api.server import app
from tenpay_notify.api.routes.notify import collect_params
from tenpay_notify.config.settings import NOTIFY_PATH, parse_networks

from tests.conftest import TEST_SIGN_KEY, signed


@pytest.fixture
def mock_forwarder():
    """Фикстура для мока ResultForwarder"""
    forwarder = Mock()
    forwarder.enabled = True
    forwarder.forward = AsyncMock(return_value=True)
    return forwarder


@pytest.fixture
async def test_client():
    """Фикстура для создания тестового клиента FastAPI"""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


def query(params):
    return urlencode([(k, v) for k, values in params.items() for v in values])


# ==================== Успешные сценарии ====================

@pytest.mark.asyncio
async def test_notify_success(test_client, signed_params, mock_forwarder):
    """Тест: корректное уведомление принимается и пересылается"""
    with patch('tenpay_notify.api.routes.notify.PAY_SIGN_KEY', TEST_SIGN_KEY), \
         patch('tenpay_notify.api.routes.notify.forwarder_instance', mock_forwarder):
        response = await test_client.get(f"{NOTIFY_PATH}?{query(signed_params)}")

    assert response.status_code == 200
    assert response.text == "success"
    mock_forwarder.forward.assert_awaited_once()
    data = mock_forwarder.forward.await_args.args[0]
    assert data.out_trade_no == "T1"
    assert data.total_fee == 100


@pytest.mark.asyncio
async def test_notify_success_post_form(test_client, signed_params, mock_forwarder):
    """Тест: уведомление в теле POST запроса"""
    with patch('tenpay_notify.api.routes.notify.PAY_SIGN_KEY', TEST_SIGN_KEY), \
         patch('tenpay_notify.api.routes.notify.forwarder_instance', mock_forwarder):
        response = await test_client.post(
            NOTIFY_PATH,
            content=query(signed_params),
            headers={"Content-Type": "application/x-www-form-urlencoded"}
        )

    assert response.status_code == 200
    assert response.text == "success"


@pytest.mark.asyncio
async def test_notify_success_without_forwarder(test_client, signed_params):
    """Тест: без forwarder уведомление все равно подтверждается"""
    with patch('tenpay_notify.api.routes.notify.PAY_SIGN_KEY', TEST_SIGN_KEY), \
         patch('tenpay_notify.api.routes.notify.forwarder_instance', None):
        response = await test_client.get(f"{NOTIFY_PATH}?{query(signed_params)}")

    assert response.status_code == 200
    assert response.text == "success"


@pytest.mark.asyncio
async def test_notify_keeps_blank_values(test_client, base_params, mock_forwarder):
    """Тест: пустые значения участвуют в подписи"""
    base_params["pay_info"] = [""]

    with patch('tenpay_notify.api.routes.notify.PAY_SIGN_KEY', TEST_SIGN_KEY), \
         patch('tenpay_notify.api.routes.notify.forwarder_instance', mock_forwarder):
        response = await test_client.get(f"{NOTIFY_PATH}?{query(signed(base_params))}")

    assert response.text == "success"


# ==================== Ошибки ====================

@pytest.mark.asyncio
async def test_notify_bad_signature(test_client, signed_params, mock_forwarder):
    """Тест: неверная подпись - fail, ничего не пересылается"""
    signed_params["total_fee"] = ["1"]

    with patch('tenpay_notify.api.routes.notify.PAY_SIGN_KEY', TEST_SIGN_KEY), \
         patch('tenpay_notify.api.routes.notify.forwarder_instance', mock_forwarder):
        response = await test_client.get(f"{NOTIFY_PATH}?{query(signed_params)}")

    assert response.status_code == 400
    assert response.text == "fail"
    mock_forwarder.forward.assert_not_awaited()


@pytest.mark.asyncio
async def test_notify_missing_sign(test_client, base_params, mock_forwarder):
    """Тест: уведомление без подписи"""
    with patch('tenpay_notify.api.routes.notify.PAY_SIGN_KEY', TEST_SIGN_KEY), \
         patch('tenpay_notify.api.routes.notify.forwarder_instance', mock_forwarder):
        response = await test_client.get(f"{NOTIFY_PATH}?{query(base_params)}")

    assert response.status_code == 400
    assert response.text == "fail"
    mock_forwarder.forward.assert_not_awaited()


@pytest.mark.asyncio
async def test_notify_sign_key_not_configured(test_client, signed_params):
    """Тест: без PAY_SIGN_KEY - 500"""
    with patch('tenpay_notify.api.routes.notify.PAY_SIGN_KEY', None):
        response = await test_client.get(f"{NOTIFY_PATH}?{query(signed_params)}")

    assert response.status_code == 500


@pytest.mark.asyncio
async def test_notify_ip_check_rejects(test_client, signed_params, mock_forwarder):
    """Тест: IP не из разрешенных диапазонов - 403"""
    with patch('tenpay_notify.api.routes.notify.PAY_SIGN_KEY', TEST_SIGN_KEY), \
         patch('tenpay_notify.api.routes.notify.NOTIFY_IP_CHECK_ENABLED', True), \
         patch('tenpay_notify.api.middleware.source_ip_check.NOTIFY_ALLOWED_NETWORKS', parse_networks("10.0.0.0/8")), \
         patch('tenpay_notify.api.routes.notify.forwarder_instance', mock_forwarder):
        response = await test_client.get(f"{NOTIFY_PATH}?{query(signed_params)}")

    assert response.status_code == 403
    mock_forwarder.forward.assert_not_awaited()


# ==================== Вспомогательные ====================

def test_collect_params_keeps_order():
    """Тест: значения одного ключа сохраняют порядок"""
    params = collect_params([("a", "2"), ("b", "x"), ("a", "1")])

    assert params == {"a": ["2", "1"], "b": ["x"]}


@pytest.mark.asyncio
async def test_health(test_client):
    """Тест: health endpoint"""
    response = await test_client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["notify_path"] == NOTIFY_PATH
