"""
INVITATIONS SMTP Helper
=======================
Async SMTP mailer for app-password accounts (Gmail by default).

One connection is opened per invocation and shared by every send,
one send at a time. A send abandoned on timeout leaves the connection
out of step with the server, so it is reopened before the next send.
"""

import asyncio
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate, make_msgid

import aiosmtplib

from lambdas.common.errors import RecipientSendError
from lambdas.common.logger import get_logger

log = get_logger(__file__)


class SmtpMailer:
    """Sends HTML emails over a single authenticated SMTP connection."""

    def __init__(self, config, client: aiosmtplib.SMTP = None):
        self.sender: str = config.email_user
        self.from_header: str = (
            formataddr((config.email_from_name, config.email_user))
            if config.email_from_name else config.email_user
        )
        self.host: str = config.smtp_host
        self._client = client or aiosmtplib.SMTP(
            hostname=config.smtp_host,
            port=config.smtp_port,
            username=config.email_user,
            password=config.email_app_password,
            use_tls=config.smtp_use_tls,
            start_tls=not config.smtp_use_tls
        )
        self._lock: asyncio.Lock = None
        self._stale: bool = False

    async def open(self):
        """Connect and log in. Failures propagate to the caller."""
        log.info(f"Connecting to SMTP server {self.host}...")
        await self._client.connect()

    async def close(self):
        """Say goodbye to the server. A failed QUIT is logged, not raised."""
        if self._stale:
            # QUIT would only read the abandoned reply
            self._client.close()
            return
        try:
            if self._client.is_connected:
                await self._client.quit()
        except aiosmtplib.SMTPException as err:
            log.warning(f"SMTP quit failed: {err}")

    def build_message(self, to_email: str, subject: str, html_body: str, text_body: str = None) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = self.from_header
        message["To"] = to_email
        message["Date"] = formatdate(localtime=False)
        message["Message-ID"] = make_msgid(domain=self.sender.rsplit("@", 1)[-1])

        if text_body:
            message.attach(MIMEText(text_body, "plain", "utf-8"))
        message.attach(MIMEText(html_body, "html", "utf-8"))
        return message

    async def send(self, to_email: str, subject: str, html_body: str, text_body: str = None, timeout: float = None) -> str:
        """
        Send one email.

        Sends share the connection one at a time. The timeout only counts
        time spent holding it, so a slow recipient does not eat into the
        budget of the ones queued behind it.

        Returns:
            The Message-ID header of the sent email

        Raises:
            RecipientSendError: The server refused or the connection failed
            asyncio.TimeoutError: The send held the connection past timeout
        """
        message = self.build_message(to_email, subject, html_body, text_body)

        async with self._get_lock():
            if self._stale:
                await self._reconnect(to_email)

            try:
                send = self._client.send_message(message)
                errors, response = await asyncio.wait_for(send, timeout) if timeout else await send
            except asyncio.TimeoutError:
                # The server's reply is still pending on this connection
                self._stale = True
                raise
            except aiosmtplib.SMTPException as err:
                raise RecipientSendError(
                    message=f"SMTP send failed: {err}",
                    handler="smtp_helper",
                    recipient=to_email
                ) from err

        if to_email in errors:
            code, reason = errors[to_email]
            raise RecipientSendError(
                message=f"SMTP recipient refused ({code}): {reason}",
                handler="smtp_helper",
                recipient=to_email
            )

        log.debug(f"[{to_email}] SMTP response: {response}")
        return message["Message-ID"]

    def _get_lock(self) -> asyncio.Lock:
        # Created lazily so it belongs to the running loop
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def _reconnect(self, to_email: str):
        log.warning("Reconnecting to SMTP server after an abandoned send...")
        self._client.close()
        try:
            await self._client.connect()
        except (aiosmtplib.SMTPException, OSError) as err:
            raise RecipientSendError(
                message=f"SMTP reconnect failed: {err}",
                handler="smtp_helper",
                function="_reconnect",
                recipient=to_email
            ) from err
        self._stale = False
