import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coaching.config import settings
from coaching.models.notification import Notification, NotificationDeliveryLog
from coaching.models.user import User

logger = logging.getLogger(__name__)

CHANNEL_PUSH = "PUSH"
CHANNEL_EMAIL = "EMAIL"


@dataclass
class SendResult:
    status: str
    provider_message_id: str | None = None
    error_message: str | None = None


class DeliveryProvider:
    channel: str = ""

    async def send(self, to: str, title: str, body: str, data: dict[str, Any]) -> SendResult:
        raise NotImplementedError


class MockProvider(DeliveryProvider):
    def __init__(self, channel: str, enabled: bool) -> None:
        self.channel = channel
        self.enabled = enabled

    async def send(self, to: str, title: str, body: str, data: dict[str, Any]) -> SendResult:
        if not self.enabled:
            return SendResult(status="SKIPPED", error_message=f"{self.channel.lower()} disabled")
        return SendResult(status="SENT", provider_message_id="dry-run")


class HttpProvider(DeliveryProvider):
    def __init__(self, channel: str, url: str | None, token: str | None) -> None:
        self.channel = channel
        self.url = url
        self.token = token

    async def send(self, to: str, title: str, body: str, data: dict[str, Any]) -> SendResult:
        if not self.url:
            return SendResult(status="FAILED", error_message=f"Missing {self.channel.lower()} API configuration")

        payload = {"to": to, "title": title, "body": body, "data": data}
        if self.channel == CHANNEL_EMAIL:
            payload["from"] = settings.EMAIL_FROM
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        async with httpx.AsyncClient(timeout=settings.NOTIFICATION_TIMEOUT_SECONDS) as client:
            response = await client.post(self.url, json=payload, headers=headers)
        if response.status_code >= 400:
            return SendResult(status="FAILED", error_message=f"HTTP {response.status_code}")

        response_data = response.json() if response.content else {}
        return SendResult(status="SENT", provider_message_id=str(response_data.get("message_id", "http-provider")))


def get_provider(channel: str) -> DeliveryProvider:
    if channel == CHANNEL_PUSH:
        if settings.PUSH_ENABLED and not settings.NOTIFICATION_DRY_RUN:
            return HttpProvider(CHANNEL_PUSH, settings.PUSH_API_URL, settings.PUSH_API_TOKEN)
        return MockProvider(CHANNEL_PUSH, settings.PUSH_ENABLED)
    if settings.EMAIL_ENABLED and not settings.NOTIFICATION_DRY_RUN:
        return HttpProvider(CHANNEL_EMAIL, settings.EMAIL_API_URL, settings.EMAIL_API_TOKEN)
    return MockProvider(CHANNEL_EMAIL, settings.EMAIL_ENABLED)


class NotificationService:
    @staticmethod
    async def create_in_app(
        db: AsyncSession,
        *,
        user_id,
        type: str,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> Notification:
        notification = Notification(user_id=user_id, type=type, title=title, message=message, data=data)
        db.add(notification)
        await db.flush()
        return notification

    @staticmethod
    async def deliver(
        *,
        db: AsyncSession,
        channel: str,
        user: User | None,
        recipient: str | None,
        title: str,
        body: str,
        event_type: str,
        event_ref: str | None,
        data: dict[str, Any],
        idempotency_key: str,
    ) -> NotificationDeliveryLog:
        existing = await db.execute(
            select(NotificationDeliveryLog).where(NotificationDeliveryLog.idempotency_key == idempotency_key)
        )
        existing_log = existing.scalar_one_or_none()
        if existing_log:
            return existing_log

        log = NotificationDeliveryLog(
            user_id=user.id if user else None,
            channel=channel,
            recipient=recipient,
            payload_json=json.dumps({"title": title, "body": body, "data": data}, ensure_ascii=True, default=str),
            event_type=event_type,
            event_ref=event_ref,
            idempotency_key=idempotency_key,
            status="QUEUED",
        )
        db.add(log)
        await db.flush()

        if not recipient:
            log.status = "SKIPPED"
            log.error_message = "No recipient"
            log.failed_at = datetime.now(timezone.utc)
            return log

        try:
            result = await get_provider(channel).send(recipient, title, body, data)
        except httpx.HTTPError as exc:
            result = SendResult(status="FAILED", error_message=str(exc))
        now = datetime.now(timezone.utc)
        if result.status == "SENT":
            log.status = "SENT"
            log.provider_message_id = result.provider_message_id
            log.sent_at = now
        else:
            log.status = result.status
            log.error_message = result.error_message
            log.failed_at = now
        return log

    @staticmethod
    async def notify_user(
        db: AsyncSession,
        *,
        user: User,
        type: str,
        title: str,
        message: str,
        event_ref: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        """Fan a notification out to in-app, push and email. Best effort: never raises.

        Runs after the primary write has been committed, so a failure here is
        logged and rolled back without touching the caller's result.
        """
        payload = data or {}
        try:
            await NotificationService.create_in_app(
                db, user_id=user.id, type=type, title=title, message=message, data=payload
            )
            for channel, recipient in ((CHANNEL_PUSH, str(user.id)), (CHANNEL_EMAIL, user.email)):
                await NotificationService.deliver(
                    db=db,
                    channel=channel,
                    user=user,
                    recipient=recipient,
                    title=title,
                    body=message,
                    event_type=type,
                    event_ref=event_ref,
                    data=payload,
                    idempotency_key=f"{type}:{channel}:{user.id}:{event_ref}",
                )
            await db.commit()
        except Exception:
            logger.exception("Failed to notify user %s (%s)", user.id, type)
            await db.rollback()
