#!/usr/bin/env python3
"""
Тестовый скрипт: отправить подписанное уведомление об оплате на notify URL
"""
import os
import sys
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import requests

sys.path.insert(0, str(Path(__file__).parent.parent))

from tenpay_notify.utils.notify_sign import sign_params  # noqa: E402
from tenpay_notify.utils.pay_time import format_time  # noqa: E402

# Конфигурация
API_BASE_URL = os.getenv("NOTIFY_BASE_URL", "http://localhost:80")
NOTIFY_PATH = os.getenv("NOTIFY_PATH", "/api/pay/notify")
PAY_SIGN_KEY = os.getenv("PAY_SIGN_KEY", "test_sign_key")
PAY_TIMEZONE = os.getenv("PAY_TIMEZONE", "Asia/Shanghai")


def build_params(out_trade_no: str = "TEST-ORDER-1", total_fee: int = 100):
    """Параметры уведомления с корректной подписью"""
    # Время платежной системы - пекинское, независимо от часового пояса хоста
    now = datetime.now(ZoneInfo(PAY_TIMEZONE))
    params = {
        "notify_id": ["test-notify-id"],
        "trade_mode": ["1"],
        "trade_state": ["0"],
        "transaction_id": ["1900000109" + now.strftime("%Y%m%d") + "0000000001"],
        "time_end": [format_time(now)],
        "bank_type": ["WX"],
        "partner": ["1900000109"],
        "out_trade_no": [out_trade_no],
        "total_fee": [str(total_fee)],
        "fee_type": ["1"],
        "input_charset": ["UTF-8"],
    }
    params["sign"] = [sign_params(params, PAY_SIGN_KEY)]
    return params


def send(params):
    url = f"{API_BASE_URL}{NOTIFY_PATH}"
    response = requests.get(url, params=params, timeout=10)
    print(f"   Статус: {response.status_code}")
    print(f"   Ответ: {response.text}")
    return response


def test_valid_notify():
    """Корректно подписанное уведомление (ожидается success)"""
    print("🔍 Отправка корректного уведомления...")
    return send(build_params())


def test_tampered_notify():
    """Подделанная сумма при старой подписи (ожидается fail)"""
    print("\n🔍 Отправка уведомления с изменённой суммой...")
    params = build_params()
    params["total_fee"] = ["1"]
    response = send(params)
    if response.text.strip() == "fail":
        print("   ✅ Правильно отклонено")
    else:
        print("   ❌ Ошибка: подделанное уведомление принято!")
    return response


def main():
    print("=" * 60)
    print("🧪 Тестирование notify URL")
    print("=" * 60)

    test_valid_notify()
    test_tampered_notify()

    print("\n" + "=" * 60)
    print("✅ Тестирование завершено!")
    print("=" * 60)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\n\n⚠️  Тестирование прервано пользователем")
        sys.exit(0)
    except requests.RequestException as e:
        print(f"\n❌ Ошибка запроса: {e}")
        sys.exit(1)
