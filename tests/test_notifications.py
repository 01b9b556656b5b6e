import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from coaching.config import settings
from coaching.models.notification import Notification, NotificationDeliveryLog
from coaching.models.user import User
from coaching.services import notification_service
from coaching.services.notification_service import (
    CHANNEL_EMAIL,
    CHANNEL_PUSH,
    HttpProvider,
    MockProvider,
    NotificationService,
    get_provider,
)


async def _logs(db_session: AsyncSession) -> list[NotificationDeliveryLog]:
    result = await db_session.execute(select(NotificationDeliveryLog).order_by(NotificationDeliveryLog.channel))
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_disabled_channels_are_skipped(db_session: AsyncSession, client_user: User):
    await NotificationService.notify_user(
        db_session, user=client_user, type="PROGRAM_ASSIGNED", title="Assigned", message="Hi", event_ref="a1"
    )
    logs = await _logs(db_session)
    assert [(log.channel, log.status) for log in logs] == [(CHANNEL_EMAIL, "SKIPPED"), (CHANNEL_PUSH, "SKIPPED")]
    assert logs[0].recipient == "client@test.com"
    count = await db_session.execute(select(func.count()).select_from(Notification))
    assert count.scalar_one() == 1


@pytest.mark.asyncio
async def test_dry_run_marks_enabled_channels_sent(db_session: AsyncSession, client_user: User, monkeypatch):
    monkeypatch.setattr(settings, "PUSH_ENABLED", True)
    monkeypatch.setattr(settings, "EMAIL_ENABLED", True)
    await NotificationService.notify_user(
        db_session, user=client_user, type="VIDEO_ASSIGNED", title="Video", message="Watch", event_ref="v1"
    )
    logs = await _logs(db_session)
    assert {log.status for log in logs} == {"SENT"}
    assert all(log.provider_message_id == "dry-run" and log.sent_at is not None for log in logs)


@pytest.mark.asyncio
async def test_delivery_is_idempotent(db_session: AsyncSession, client_user: User):
    for _ in range(2):
        await NotificationService.deliver(
            db=db_session,
            channel=CHANNEL_PUSH,
            user=client_user,
            recipient=str(client_user.id),
            title="Replaced",
            body="Your workout moved",
            event_type="WORKOUT_REPLACED",
            event_ref="r1",
            data={},
            idempotency_key="WORKOUT_REPLACED:PUSH:r1",
        )
    await db_session.commit()
    assert len(await _logs(db_session)) == 1


@pytest.mark.asyncio
async def test_missing_recipient_is_skipped(db_session: AsyncSession):
    log = await NotificationService.deliver(
        db=db_session,
        channel=CHANNEL_EMAIL,
        user=None,
        recipient=None,
        title="t",
        body="b",
        event_type="PROGRAM_ASSIGNED",
        event_ref=None,
        data={},
        idempotency_key="no-recipient",
    )
    assert log.status == "SKIPPED"
    assert log.error_message == "No recipient"


@pytest.mark.asyncio
async def test_notify_user_never_raises(db_session: AsyncSession, client_user: User, monkeypatch):
    async def broken(**kwargs):
        raise RuntimeError("provider exploded")

    monkeypatch.setattr(NotificationService, "deliver", staticmethod(broken))
    await NotificationService.notify_user(
        db_session, user=client_user, type="PROGRAM_ASSIGNED", title="t", message="m", event_ref="x"
    )
    count = await db_session.execute(select(func.count()).select_from(Notification))
    assert count.scalar_one() == 0


def test_provider_selection(monkeypatch):
    monkeypatch.setattr(settings, "PUSH_ENABLED", True)
    monkeypatch.setattr(settings, "NOTIFICATION_DRY_RUN", False)
    assert isinstance(get_provider(CHANNEL_PUSH), HttpProvider)
    assert isinstance(get_provider(CHANNEL_EMAIL), MockProvider)

    monkeypatch.setattr(settings, "NOTIFICATION_DRY_RUN", True)
    assert isinstance(get_provider(CHANNEL_PUSH), MockProvider)


@pytest.mark.asyncio
async def test_http_provider_without_url_fails():
    result = await HttpProvider(CHANNEL_PUSH, None, None).send("to", "t", "b", {})
    assert result.status == "FAILED"
    assert "push" in result.error_message


@pytest.mark.asyncio
async def test_http_provider_posts_payload(monkeypatch):
    captured = {}

    class FakeResponse:
        status_code = 200
        content = b'{"message_id": "m-1"}'

        def json(self):
            return {"message_id": "m-1"}

    class FakeClient:
        def __init__(self, timeout):
            captured["timeout"] = timeout

        async def __aenter__(self):
            return self

        async def __aexit__(self, *exc):
            return False

        async def post(self, url, json, headers):
            captured.update(url=url, json=json, headers=headers)
            return FakeResponse()

    monkeypatch.setattr(notification_service.httpx, "AsyncClient", FakeClient)
    result = await HttpProvider(CHANNEL_EMAIL, "https://mail.test/send", "secret").send(
        "client@test.com", "Title", "Body", {"k": "v"}
    )
    assert result.status == "SENT"
    assert result.provider_message_id == "m-1"
    assert captured["headers"] == {"Authorization": "Bearer secret"}
    assert captured["json"]["from"] == settings.EMAIL_FROM
