"""In-process notification provider.

Nothing leaves the process: every message lands in ``outbox`` so tests and
offline runs can inspect what would have been delivered.
"""

import re
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from string import Template
from typing import Any, Dict, List, Optional, Sequence, Set

import structlog

from infrastructure.resilience.errors import InvalidArgumentError, NotFoundError
from modules.providers.contracts import NotificationProvider
from modules.providers.local.auth import normalize_email
from modules.providers.models import (
    EmailMessage,
    HealthCheckResult,
    PushNotification,
    utcnow,
)

logger = structlog.get_logger()

PHONE_PATTERN = re.compile(r"^\+[1-9]\d{6,14}$")


@dataclass
class OutboxMessage:
    id: str
    channel: str
    recipients: List[str]
    payload: Dict[str, Any]
    sent_at: Any = field(default_factory=utcnow)


@dataclass
class EmailTemplate:
    subject: str
    text: str
    html: Optional[str] = None


class LocalNotificationProvider(NotificationProvider):
    def __init__(self, default_from: str = "noreply@localhost.localdomain"):
        self.default_from = default_from
        self.outbox: List[OutboxMessage] = []
        self.templates: Dict[str, EmailTemplate] = {}
        self._topics: Dict[str, Set[str]] = defaultdict(set)

    def register_template(
        self, name: str, subject: str, text: str, html: Optional[str] = None
    ) -> None:
        """Add a ``$variable`` style template usable by ``send_templated_email``."""
        self.templates[name] = EmailTemplate(subject=subject, text=text, html=html)

    def topic_subscribers(self, topic: str) -> Set[str]:
        return set(self._topics.get(topic, set()))

    def _deliver(self, channel: str, recipients: List[str], payload: Dict[str, Any]) -> str:
        message = OutboxMessage(
            id=uuid.uuid4().hex, channel=channel, recipients=recipients, payload=payload
        )
        self.outbox.append(message)
        logger.debug(
            "local_notification_queued",
            channel=channel,
            message_id=message.id,
            recipient_count=len(recipients),
        )
        return message.id

    async def send_email(self, message: EmailMessage) -> str:
        if not message.to:
            raise InvalidArgumentError("Email requires at least one recipient")
        if message.text is None and message.html is None:
            raise InvalidArgumentError("Email requires a text or html body")
        recipients = [normalize_email(address) for address in message.to]
        return self._deliver(
            "email",
            recipients,
            {
                "from": message.from_address or self.default_from,
                "subject": message.subject,
                "text": message.text,
                "html": message.html,
                "attachments": [a.filename for a in message.attachments],
            },
        )

    async def send_templated_email(
        self, template: str, to: Sequence[str], variables: Dict[str, Any]
    ) -> str:
        if template not in self.templates:
            raise NotFoundError(f"Email template not found: {template}")
        entry = self.templates[template]
        try:
            subject = Template(entry.subject).substitute(variables)
            text = Template(entry.text).substitute(variables)
            html = Template(entry.html).substitute(variables) if entry.html else None
        except KeyError as e:
            raise InvalidArgumentError(
                f"Template {template!r} is missing variable {e.args[0]!r}"
            ) from e
        return await self.send_email(
            EmailMessage(to=list(to), subject=subject, text=text, html=html)
        )

    async def send_sms(self, to: str, message: str) -> str:
        if not PHONE_PATTERN.match(to):
            raise InvalidArgumentError(f"Phone number must be in E.164 format: {to!r}")
        return self._deliver("sms", [to], {"message": message})

    async def send_push(self, user_id: str, notification: PushNotification) -> str:
        return self._deliver(
            "push",
            [user_id],
            {
                "title": notification.title,
                "body": notification.body,
                "data": dict(notification.data),
            },
        )

    async def subscribe_to_topic(self, user_id: str, topic: str) -> None:
        self._topics[topic].add(user_id)

    async def health_check(self) -> HealthCheckResult:
        return HealthCheckResult(
            healthy=True, status="healthy", details={"queued": len(self.outbox)}
        )
