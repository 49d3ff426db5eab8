"""Пересылка разобранных уведомлений в backend мерчанта с фоновой очередью и retry"""
import asyncio
import hmac
import hashlib
import json
import time
import logging
from dataclasses import asdict, dataclass
from typing import Optional, Dict, Any

import httpx

from tenpay_notify.utils.notify_data import NotifyURLData

logger = logging.getLogger(__name__)


@dataclass
class ForwardTask:
    """Задача для отправки результата оплаты"""
    webhook_url: str
    payload: Dict[str, Any]
    transaction_id: str
    attempt: int = 0
    max_attempts: int = 3


def notification_payload(data: NotifyURLData) -> Dict[str, Any]:
    """
    Представление уведомления для backend мерчанта.

    time_end сериализуется в ISO-8601, подпись провайдера не пересылается.
    """
    payload = asdict(data)
    payload.pop("signature", None)
    payload["time_end"] = data.time_end.isoformat()
    payload["event"] = "pay_notify_verified"
    payload["timestamp"] = int(time.time())
    return payload


class ResultForwarder:
    """
    Пересылает проверенные уведомления в backend через webhook

    Использует asyncio.Queue для неблокирующей обработки.
    Реализует exponential backoff для повторных попыток.
    Добавляет HMAC подпись, если задан shared_secret.
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        shared_secret: Optional[str] = None,
        timeout_seconds: int = 10,
        max_attempts: int = 3,
    ):
        """
        Args:
            webhook_url: URL backend мерчанта; без него уведомления только логируются
            shared_secret: Секретный ключ для HMAC подписи (опционально)
            timeout_seconds: Таймаут HTTP запроса в секундах
            max_attempts: Максимальное количество попыток отправки
        """
        self._webhook_url = webhook_url
        self._shared_secret = shared_secret
        self._timeout = timeout_seconds
        self._max_attempts = max_attempts
        self._queue: asyncio.Queue = asyncio.Queue()
        self._worker_task: Optional[asyncio.Task] = None
        self._shutdown_event = asyncio.Event()
        self._client: Optional[httpx.AsyncClient] = None

        logger.info(
            f"ResultForwarder initialized: "
            f"enabled={bool(webhook_url)}, timeout={timeout_seconds}s, "
            f"max_attempts={max_attempts}, hmac_enabled={bool(shared_secret)}"
        )

    @property
    def enabled(self) -> bool:
        return bool(self._webhook_url)

    async def start(self):
        """Запустить фоновый worker для обработки очереди"""
        if not self.enabled:
            logger.info("ResultForwarder disabled: MERCHANT_WEBHOOK_URL not set")
            return

        if self._worker_task and not self._worker_task.done():
            logger.warning("ResultForwarder worker already running")
            return

        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            follow_redirects=True
        )

        self._shutdown_event.clear()
        self._worker_task = asyncio.create_task(self._worker())
        logger.info("ResultForwarder worker started")

    async def stop(self):
        """Остановить worker и дождаться завершения обработки очереди"""
        if not self._worker_task:
            return

        logger.info("Stopping ResultForwarder worker...")
        self._shutdown_event.set()

        try:
            await asyncio.wait_for(self._worker_task, timeout=30.0)
        except asyncio.TimeoutError:
            logger.warning("ResultForwarder worker did not finish in time, cancelling")
            self._worker_task.cancel()
            try:
                await self._worker_task
            except asyncio.CancelledError:
                pass
        self._worker_task = None

        if self._client:
            await self._client.aclose()
            self._client = None

        logger.info("ResultForwarder worker stopped")

    async def forward(self, data: NotifyURLData) -> bool:
        """
        Поставить проверенное уведомление в очередь

        Args:
            data: Разобранное уведомление

        Returns:
            True если задача поставлена в очередь
        """
        if not self.enabled:
            logger.info(
                f"Notification not forwarded (no webhook url): "
                f"transaction_id={data.transaction_id}, out_trade_no={data.out_trade_no}"
            )
            return False

        task = ForwardTask(
            webhook_url=self._webhook_url,
            payload=notification_payload(data),
            transaction_id=data.transaction_id,
            attempt=0,
            max_attempts=self._max_attempts
        )
        await self._queue.put(task)

        logger.info(
            f"Notification queued: transaction_id={data.transaction_id}, "
            f"out_trade_no={data.out_trade_no}, trade_state={data.trade_state}"
        )
        return True

    async def _worker(self):
        """Фоновый worker для обработки очереди"""
        logger.info("ResultForwarder worker loop started")

        while not self._shutdown_event.is_set():
            try:
                # Ждём задачу с таймаутом, чтобы проверять shutdown_event
                try:
                    task = await asyncio.wait_for(self._queue.get(), timeout=1.0)
                except asyncio.TimeoutError:
                    continue

                await self._process_task(task)

            except Exception as e:
                logger.error(f"Error in forwarder worker loop: {e}", exc_info=True)

        # Обрабатываем оставшиеся задачи перед остановкой
        logger.info("Processing remaining forward tasks before shutdown...")
        while not self._queue.empty():
            try:
                task = self._queue.get_nowait()
                await self._process_task(task)
            except asyncio.QueueEmpty:
                break
            except Exception as e:
                logger.error(f"Error processing remaining task: {e}", exc_info=True)

        logger.info("ResultForwarder worker loop stopped")

    async def _process_task(self, task: ForwardTask):
        """
        Обработать одну задачу

        Args:
            task: Задача для обработки
        """
        task.attempt += 1

        logger.info(
            f"Forwarding notification: transaction_id={task.transaction_id}, "
            f"attempt={task.attempt}/{task.max_attempts}"
        )

        success = await self._send(task.webhook_url, task.payload)
        if success:
            logger.info(
                f"Notification delivered: transaction_id={task.transaction_id}, "
                f"attempt={task.attempt}"
            )
            return

        if task.attempt < task.max_attempts:
            # Exponential backoff: 1s, 2s, 4s
            delay = 2 ** (task.attempt - 1)
            logger.warning(
                f"Forward failed, will retry in {delay}s: "
                f"transaction_id={task.transaction_id}, attempt={task.attempt}"
            )
            await asyncio.sleep(delay)
            await self._queue.put(task)
        else:
            logger.error(
                f"Forward failed after {task.max_attempts} attempts: "
                f"transaction_id={task.transaction_id}, url={task.webhook_url}"
            )

    @staticmethod
    def canonical_json(data: Dict[str, Any]) -> str:
        """
        Canonical JSON: ключи отсортированы, без пробелов, ensure_ascii=False

        Args:
            data: Словарь для сериализации

        Returns:
            Canonical JSON строка
        """
        return json.dumps(
            data,
            ensure_ascii=False,
            separators=(',', ':'),
            sort_keys=True
        )

    def _generate_hmac_signature(self, body: str) -> str:
        """HMAC-SHA256(shared_secret, body) в hex"""
        if not self._shared_secret:
            return ""
        return hmac.new(
            self._shared_secret.encode('utf-8'),
            body.encode('utf-8'),
            hashlib.sha256
        ).hexdigest()

    async def _send(self, url: str, payload: Dict[str, Any]) -> bool:
        """
        Отправить HTTP POST с canonical JSON телом

        Returns:
            True если успешно (2xx response), False иначе
        """
        if not self._client:
            logger.error("HTTP client not initialized")
            return False

        body = self.canonical_json(payload)
        headers = {
            "Content-Type": "application/json; charset=utf-8",
            "User-Agent": "TenpayNotify-ResultForwarder/1.0",
        }
        if self._shared_secret:
            headers["X-Webhook-Signature"] = self._generate_hmac_signature(body)

        try:
            response = await self._client.post(
                url,
                content=body.encode('utf-8'),
                headers=headers
            )
        except httpx.TimeoutException as e:
            logger.warning(f"Forward request timeout: {e}, url={url}")
            return False
        except httpx.HTTPError as e:
            logger.warning(f"Forward HTTP error: {e}, url={url}")
            return False

        if 200 <= response.status_code < 300:
            logger.info(f"Forward response: status={response.status_code}")
            return True

        logger.warning(
            f"Forward returned non-2xx status: status={response.status_code}, "
            f"body={response.text[:200]}"
        )
        return False

    async def get_queue_size(self) -> int:
        """Размер очереди (для мониторинга)"""
        return self._queue.qsize()
