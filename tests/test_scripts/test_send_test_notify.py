"""
Тесты для скрипта отправки тестового уведомления
"""
from datetime import datetime, timedelta, timezone

from scripts.send_test_notify import PAY_SIGN_KEY, build_params
from tenpay_notify.utils.notify_data import decode_notify_url_data


def test_build_params_decodes():
    """Тест: сформированное уведомление проходит проверку подписи"""
    data = decode_notify_url_data(build_params(out_trade_no="T9", total_fee=250), PAY_SIGN_KEY)

    assert data.out_trade_no == "T9"
    assert data.total_fee == 250


def test_build_params_time_end_is_current_beijing_time():
    """Тест: time_end - текущее время в Asia/Shanghai, а не локальное время хоста"""
    data = decode_notify_url_data(build_params(), PAY_SIGN_KEY)

    assert abs(data.time_end - datetime.now(timezone.utc)) < timedelta(minutes=1)
    assert data.transaction_id[10:18] == data.time_end.strftime("%Y%m%d")
