"""
Tests for the notification queue.
"""
import logging

import pytest
from fastapi import BackgroundTasks

from authserver.services.email_service import MockEmailService
from authserver.services.notifier import Notifier


class BrokenEmailService(MockEmailService):
    async def send_email(self, to, subject, body):
        raise ConnectionError("smtp down")


def test_notify_without_queue_fails_loudly(email_service):
    notifier = Notifier()
    with pytest.raises(RuntimeError):
        notifier.notify("send_account_reactivated", to="a@corp.com", name="A")
    assert email_service.sent_emails == []


@pytest.mark.asyncio
async def test_queued_notification_is_delivered(email_service):
    tasks = BackgroundTasks()
    Notifier(tasks).notify("send_account_reactivated", to="a@corp.com", name="A")
    assert email_service.sent_emails == []

    await tasks()

    assert email_service.get_last_email()["to"] == "a@corp.com"


@pytest.mark.asyncio
async def test_delivery_failure_is_logged(caplog):
    tasks = BackgroundTasks()
    notifier = Notifier(tasks, email_service=BrokenEmailService())
    notifier.notify("send_account_reactivated", to="a@corp.com", name="A")

    with caplog.at_level(logging.ERROR, logger="authserver.services.notifier"):
        await tasks()

    assert "a@corp.com" in caplog.text
    assert "smtp down" in caplog.text
