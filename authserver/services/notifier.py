"""
Notifier - queues email notifications as background tasks.
Deliveries run after the response is sent; their failures are only logged.
"""
import logging
from typing import Optional

from fastapi import BackgroundTasks

from authserver.services.email_service import EmailService, get_email_service

logger = logging.getLogger(__name__)


class Notifier:
    """
    Message-passing boundary between services and the email sender.

    Usage:
        notifier.notify("send_account_reactivated", to=user.email, name=user.first_name)

    A Notifier built without BackgroundTasks refuses to queue anything.
    """

    def __init__(
        self,
        background_tasks: Optional[BackgroundTasks] = None,
        email_service: Optional[EmailService] = None
    ):
        self.background_tasks = background_tasks
        self.email_service = email_service or get_email_service()

    def notify(self, kind: str, **kwargs) -> None:
        """Queue one notification. `kind` names an EmailService send_* method."""
        if self.background_tasks is None:
            raise RuntimeError(f"Notification '{kind}' has no background task queue to run on")
        self.background_tasks.add_task(self._deliver, kind, kwargs)

    async def _deliver(self, kind: str, kwargs: dict) -> None:
        recipient = kwargs.get("to")
        try:
            send = getattr(self.email_service, kind)
            await send(**kwargs)
        except Exception as e:
            logger.error(f"Notification '{kind}' to {recipient} failed: {e}")
