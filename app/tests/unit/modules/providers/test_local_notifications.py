"""Unit tests for LocalNotificationProvider."""

import pytest

from infrastructure.resilience import InvalidArgumentError, NotFoundError
from modules.providers.local import LocalNotificationProvider
from modules.providers.models import EmailAttachment, EmailMessage, PushNotification


@pytest.fixture
def notifications():
    return LocalNotificationProvider(default_from="ops@example.com")


@pytest.mark.unit
class TestEmail:
    @pytest.mark.asyncio
    async def test_email_lands_in_outbox(self, notifications):
        message_id = await notifications.send_email(
            EmailMessage(
                to=["Ada@Example.com"],
                subject="Welcome",
                text="Hello",
                attachments=[EmailAttachment(filename="terms.pdf", content=b"%PDF")],
            )
        )

        sent = notifications.outbox[0]
        assert sent.id == message_id
        assert sent.channel == "email"
        assert sent.recipients == ["Ada@example.com"]
        assert sent.payload["from"] == "ops@example.com"
        assert sent.payload["attachments"] == ["terms.pdf"]

    @pytest.mark.asyncio
    async def test_explicit_sender(self, notifications):
        await notifications.send_email(
            EmailMessage(
                to=["a@example.com"],
                subject="s",
                html="<p>x</p>",
                from_address="me@example.com",
            )
        )

        assert notifications.outbox[0].payload["from"] == "me@example.com"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "message",
        [
            EmailMessage(to=[], subject="s", text="t"),
            EmailMessage(to=["a@example.com"], subject="s"),
            EmailMessage(to=["not-an-address"], subject="s", text="t"),
        ],
    )
    async def test_invalid_email(self, notifications, message):
        with pytest.raises(InvalidArgumentError):
            await notifications.send_email(message)

        assert notifications.outbox == []


@pytest.mark.unit
class TestTemplates:
    @pytest.mark.asyncio
    async def test_templated_email(self, notifications):
        notifications.register_template(
            "welcome", "Hi $name", "Welcome to $product", html="<b>$product</b>"
        )

        await notifications.send_templated_email(
            "welcome", ["ada@example.com"], {"name": "Ada", "product": "Vault"}
        )

        payload = notifications.outbox[0].payload
        assert payload["subject"] == "Hi Ada"
        assert payload["text"] == "Welcome to Vault"
        assert payload["html"] == "<b>Vault</b>"

    @pytest.mark.asyncio
    async def test_unknown_template(self, notifications):
        with pytest.raises(NotFoundError):
            await notifications.send_templated_email("missing", ["a@example.com"], {})

    @pytest.mark.asyncio
    async def test_missing_variable(self, notifications):
        notifications.register_template("welcome", "Hi $name", "Body")

        with pytest.raises(InvalidArgumentError, match="name"):
            await notifications.send_templated_email("welcome", ["a@example.com"], {})


@pytest.mark.unit
class TestSmsAndPush:
    @pytest.mark.asyncio
    async def test_sms_requires_e164(self, notifications):
        await notifications.send_sms("+15145550100", "code 1234")

        with pytest.raises(InvalidArgumentError):
            await notifications.send_sms("514-555-0100", "code")
        with pytest.raises(InvalidArgumentError):
            await notifications.send_sms("+0123456789", "code")

        assert [m.channel for m in notifications.outbox] == ["sms"]

    @pytest.mark.asyncio
    async def test_push(self, notifications):
        await notifications.send_push(
            "u-1", PushNotification(title="Build", body="passed", data={"run": 7})
        )

        sent = notifications.outbox[0]
        assert sent.recipients == ["u-1"]
        assert sent.payload == {"title": "Build", "body": "passed", "data": {"run": 7}}

    @pytest.mark.asyncio
    async def test_topic_subscriptions(self, notifications):
        await notifications.subscribe_to_topic("u-1", "releases")
        await notifications.subscribe_to_topic("u-2", "releases")
        await notifications.subscribe_to_topic("u-1", "releases")

        assert notifications.topic_subscribers("releases") == {"u-1", "u-2"}
        assert notifications.topic_subscribers("unknown") == set()

    @pytest.mark.asyncio
    async def test_health_reports_queue(self, notifications):
        await notifications.send_sms("+15145550100", "hi")

        assert (await notifications.health_check()).details == {"queued": 1}
