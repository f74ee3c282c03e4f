"""
INVITATIONS SES Helper
======================
Sends HTML emails through Amazon SES, the hosted alternative to SMTP.
"""

import asyncio

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from lambdas.common.errors import RecipientSendError
from lambdas.common.logger import get_logger

log = get_logger(__file__)


class SesMailer:
    """
    SES-backed mailer with the same interface as SmtpMailer.
    boto3 calls block, so each send runs in a worker thread.
    """

    def __init__(self, config, client=None):
        self.sender: str = (
            f"{config.email_from_name} <{config.email_user}>"
            if config.email_from_name else config.email_user
        )
        self.region: str = config.aws_region
        self._client = client
        self._client_provided = client is not None

    async def open(self):
        if self._client is None:
            log.info(f"Initializing SES client in {self.region}.")
            self._client = boto3.client("ses", region_name=self.region)

    async def close(self):
        # Clients we built are dropped per invocation
        if not self._client_provided:
            self._client = None

    async def send(self, to_email: str, subject: str, html_body: str, text_body: str = None, timeout: float = None) -> str:
        """
        Send one email.

        SES calls do not share a connection, so the timeout covers the whole
        call. A timed-out call keeps running in its thread; only the wait ends.

        Returns:
            The SES MessageId

        Raises:
            RecipientSendError: SES rejected the message or the call failed
            asyncio.TimeoutError: No answer within timeout
        """
        body = {"Html": {"Data": html_body, "Charset": "UTF-8"}}
        if text_body:
            body["Text"] = {"Data": text_body, "Charset": "UTF-8"}

        try:
            call = asyncio.to_thread(
                self._client.send_email,
                Source=self.sender,
                Destination={"ToAddresses": [to_email]},
                Message={
                    "Subject": {"Data": subject, "Charset": "UTF-8"},
                    "Body": body
                }
            )
            response = await asyncio.wait_for(call, timeout) if timeout else await call
        except ClientError as err:
            raise RecipientSendError(
                message=f"SES send failed: {err.response.get('Error', {}).get('Message', str(err))}",
                handler="ses_helper",
                recipient=to_email
            ) from err
        except BotoCoreError as err:
            raise RecipientSendError(
                message=f"SES send failed: {err}",
                handler="ses_helper",
                recipient=to_email
            ) from err

        return response["MessageId"]
