"""
Mail transport tests with stubbed SMTP and SES clients.
"""

import asyncio
from dataclasses import replace

import aiosmtplib
import pytest
from botocore.exceptions import ClientError

from lambdas.common.errors import RecipientSendError
from lambdas.common.ses_helper import SesMailer
from lambdas.common.smtp_helper import SmtpMailer
from lambdas.send_invitations.dispatcher import InvitationDispatcher, InvitationRequest, build_mailer


class StubSmtpClient:

    def __init__(self, refused: dict = None, error: Exception = None):
        self.refused = refused or {}
        self.error = error
        self.is_connected = False
        self.messages = []
        self.quit_called = False

    async def connect(self):
        self.is_connected = True

    async def quit(self):
        self.quit_called = True
        self.is_connected = False

    async def send_message(self, message):
        if self.error:
            raise self.error
        self.messages.append(message)
        return self.refused, "250 OK queued"


class SerialSmtpClient(StubSmtpClient):
    """
    One send at a time on one connection, like a real SMTP session.

    A send cancelled mid-flight leaves its reply unread, and every later
    command on that connection gets the stale reply until it reconnects.
    """

    def __init__(self, delays: dict = None):
        super().__init__()
        self.delays = delays or {}
        self.lock = asyncio.Lock()
        self.connects = 0
        self.out_of_step = False

    async def connect(self):
        self.connects += 1
        self.out_of_step = False
        self.is_connected = True

    def close(self):
        self.is_connected = False

    async def send_message(self, message):
        async with self.lock:
            if self.out_of_step:
                raise aiosmtplib.SMTPResponseException(250, "OK")
            try:
                await asyncio.sleep(self.delays.get(message["To"], 0))
            except asyncio.CancelledError:
                self.out_of_step = True
                raise
            self.messages.append(message)
            return {}, "250 OK queued"


class StubSesClient:

    def __init__(self, error: Exception = None):
        self.error = error
        self.calls = []

    def send_email(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return {"MessageId": "ses-message-1"}


def send(mailer, to_email="a@x.com"):
    return asyncio.run(mailer.send(to_email, "Subject", "<p>Hi</p>", "Hi"))


class TestSmtpMailer:

    def test_send_builds_message(self, config):
        client = StubSmtpClient()
        mailer = SmtpMailer(replace(config, email_from_name="Test Admin"), client=client)

        message_id = send(mailer)

        message = client.messages[0]
        assert message_id == message["Message-ID"]
        assert message_id.endswith("@example.com>")
        assert message["To"] == "a@x.com"
        assert message["From"] == "Test Admin <tests@example.com>"
        assert message["Subject"] == "Subject"
        assert [part.get_content_type() for part in message.get_payload()] == ["text/plain", "text/html"]

    def test_open_and_close(self, config):
        client = StubSmtpClient()
        mailer = SmtpMailer(config, client=client)

        async def lifecycle():
            await mailer.open()
            assert client.is_connected
            await mailer.close()

        asyncio.run(lifecycle())
        assert client.quit_called

    def test_smtp_error_becomes_recipient_error(self, config):
        mailer = SmtpMailer(config, client=StubSmtpClient(error=aiosmtplib.SMTPResponseException(550, "No such user")))

        with pytest.raises(RecipientSendError) as exc:
            send(mailer)

        assert "No such user" in exc.value.message
        assert exc.value.details == {"recipient": "a@x.com"}

    def test_refused_recipient(self, config):
        mailer = SmtpMailer(config, client=StubSmtpClient(refused={"a@x.com": (550, "Mailbox unavailable")}))

        with pytest.raises(RecipientSendError) as exc:
            send(mailer)

        assert "550" in exc.value.message


class TestSesMailer:

    def test_send(self, config):
        client = StubSesClient()
        mailer = SesMailer(config, client=client)

        message_id = send(mailer)

        assert message_id == "ses-message-1"
        call = client.calls[0]
        assert call["Source"] == "tests@example.com"
        assert call["Destination"] == {"ToAddresses": ["a@x.com"]}
        assert call["Message"]["Subject"]["Data"] == "Subject"
        assert call["Message"]["Body"]["Html"]["Data"] == "<p>Hi</p>"
        assert call["Message"]["Body"]["Text"]["Data"] == "Hi"

    def test_rejected(self, config):
        error = ClientError(
            {"Error": {"Code": "MessageRejected", "Message": "Email address is not verified."}},
            "SendEmail"
        )
        mailer = SesMailer(config, client=StubSesClient(error=error))

        with pytest.raises(RecipientSendError) as exc:
            send(mailer)

        assert exc.value.message == "SES send failed: Email address is not verified."

    def test_provided_client_survives_close(self, config):
        client = StubSesClient()
        mailer = SesMailer(config, client=client)

        asyncio.run(mailer.close())

        assert send(mailer) == "ses-message-1"


class TestBuildMailer:

    def test_smtp_by_default(self, config):
        assert isinstance(build_mailer(config), SmtpMailer)

    def test_ses(self, config):
        assert isinstance(build_mailer(replace(config, transport="ses")), SesMailer)


class TestSmtpTimeouts:
    """A slow recipient only fails itself on a shared SMTP connection."""

    def test_timeout_counts_only_time_holding_the_connection(self, config, appwrite_factory):
        config = replace(config, send_timeout=0.3)
        client = SerialSmtpClient(delays={
            "slow@x.com": 5,
            "ok1@x.com": 0.15,
            "ok2@x.com": 0.15,
            "ok3@x.com": 0.15
        })
        dispatcher = InvitationDispatcher(
            config,
            mailer_factory=lambda c: SmtpMailer(c, client=client),
            appwrite_factory=appwrite_factory
        )
        request = InvitationRequest(
            emails=("slow@x.com", "ok1@x.com", "ok2@x.com", "ok3@x.com"),
            test_link="https://t/1",
            test_code="ABC123"
        )

        outcomes = asyncio.run(dispatcher.dispatch(request))

        assert [o.success for o in outcomes] == [False, True, True, True]
        assert outcomes[0].error == "Timed out after 0.3s"
        assert [m["To"] for m in client.messages] == ["ok1@x.com", "ok2@x.com", "ok3@x.com"]
        # Opened once, reopened once after the abandoned send
        assert client.connects == 2

    def test_abandoned_connection_is_closed_without_quit(self, config):
        client = SerialSmtpClient(delays={"slow@x.com": 5})
        mailer = SmtpMailer(config, client=client)

        async def run():
            await mailer.open()
            with pytest.raises(asyncio.TimeoutError):
                await mailer.send("slow@x.com", "Subject", "<p>Hi</p>", timeout=0.05)
            await mailer.close()

        asyncio.run(run())

        assert client.quit_called is False
        assert client.is_connected is False
