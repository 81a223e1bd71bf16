import json
import logging
from typing import Optional

import boto3

from ledgerapi.config import Settings, settings as default_settings
from ledgerapi.providers.queue.events import BalanceChangedEvent

logger = logging.getLogger(__name__)


class SQSClient:
    def __init__(self, settings: Settings = default_settings):
        self.sqs = boto3.client(
            'sqs',
            region_name=settings.AWS_REGION,
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            endpoint_url=settings.SQS_ENDPOINT_URL
        )
        self._queue_urls = {}

    def _queue_url(self, queue_name: str) -> str:
        if queue_name not in self._queue_urls:
            self._queue_urls[queue_name] = self.sqs.get_queue_url(QueueName=queue_name)['QueueUrl']
        return self._queue_urls[queue_name]

    def send_message(self, queue_name: str, message_body: dict):
        self.sqs.send_message(
            QueueUrl=self._queue_url(queue_name),
            MessageBody=json.dumps(message_body)
        )


class BadgeEventPublisher:
    """
    잔액 변동 이벤트를 배지 재평가 큐로 전달 (fire-and-forget)

    커밋이 끝난 뒤에만 호출되며, 실패해도 예외를 올리지 않습니다.
    """

    def __init__(self, settings: Settings = default_settings, client: Optional[SQSClient] = None):
        self._settings = settings
        self._client = client

    def _get_client(self) -> Optional[SQSClient]:
        if not self._settings.BADGE_EVENTS_ENABLED:
            return None
        if self._client is None:
            self._client = SQSClient(self._settings)
        return self._client

    def publish_balance_changed(
        self, user_id, reason: str, transaction_id=None
    ) -> bool:
        try:
            client = self._get_client()
            if client is None:
                return False
            event = BalanceChangedEvent(
                user_id=str(user_id),
                reason=reason,
                transaction_id=str(transaction_id) if transaction_id else None,
            )
            client.send_message(self._settings.SQS_BADGE_EVENTS_QUEUE, event.model_dump())
            return True
        except Exception as e:
            logger.warning(f"Badge event publish failed for user {user_id}: {e}")
            return False
