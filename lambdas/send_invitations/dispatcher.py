"""
INVITATIONS Dispatcher
======================
Validates an invitation request and sends one email per recipient.

Every recipient is sent to concurrently and independently: a failed send
becomes a failed outcome for that address and never stops the others.
"""

import asyncio
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from lambdas.common.appwrite_helper import get_appwrite_client
from lambdas.common.config import InvitationConfig
from lambdas.common.errors import InvalidFieldsError
from lambdas.common.logger import get_logger
from lambdas.common.ses_helper import SesMailer
from lambdas.common.smtp_helper import SmtpMailer
from lambdas.common.utility_helpers import parse_body, invitation_response, json_response
from lambdas.send_invitations.invitation_email import build_invitation_email, is_valid_address

log = get_logger(__file__)

HANDLER = 'send-invitations'

REQUIRED_FIELDS_MESSAGE = "Missing required fields: emails (must be a non-empty array), testLink, or testCode"


# ============================================
# Request / Outcome Models
# ============================================

@dataclass(frozen=True)
class InvitationRequest:
    emails: Tuple[str, ...]
    test_link: str
    test_code: str

    @classmethod
    def from_payload(cls, payload: dict, handler: str = HANDLER) -> "InvitationRequest":
        """
        Validate a parsed request body.

        Raises:
            InvalidFieldsError: emails is not a non-empty list of strings, or
                testLink / testCode is absent or blank
        """
        emails = payload.get("emails")
        if not isinstance(emails, list) or not emails:
            raise InvalidFieldsError(REQUIRED_FIELDS_MESSAGE, handler=handler, function="from_payload", field="emails")

        if any(not isinstance(email, str) or not email.strip() for email in emails):
            raise InvalidFieldsError(
                "Every entry in emails must be a non-empty string",
                handler=handler,
                function="from_payload",
                field="emails"
            )

        for field in ("testLink", "testCode"):
            value = payload.get(field)
            if not isinstance(value, str) or not value.strip():
                raise InvalidFieldsError(REQUIRED_FIELDS_MESSAGE, handler=handler, function="from_payload", field=field)

        return cls(
            emails=tuple(email.strip() for email in emails),
            test_link=payload["testLink"],
            test_code=payload["testCode"]
        )


@dataclass
class DispatchOutcome:
    email: str
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        outcome = {"email": self.email, "success": self.success}
        if self.message_id is not None:
            outcome["messageId"] = self.message_id
        if self.error is not None:
            outcome["error"] = self.error
        return outcome


# ============================================
# Dispatcher
# ============================================

def build_mailer(config: InvitationConfig):
    """Pick the mail transport named by the config."""
    if config.uses_ses:
        return SesMailer(config)
    return SmtpMailer(config)


class InvitationDispatcher:
    """
    Runs one invitation request end to end.

    Config and collaborators are injected so tests can hand in fakes.
    """

    def __init__(
        self,
        config: InvitationConfig,
        mailer_factory: Callable = None,
        appwrite_factory: Callable = None,
        handler: str = HANDLER
    ):
        self.config = config
        self.mailer_factory = mailer_factory or build_mailer
        self.appwrite_factory = appwrite_factory or get_appwrite_client
        self.handler = handler

    def handle(self, event: dict) -> dict:
        """
        Validate the event, send every invitation and build the response.

        Validation errors are raised as InvitationError subclasses before
        anything is sent; the Lambda handler turns them into responses.
        """
        log.info("📨 Invitation request received")

        payload = parse_body(event, handler=self.handler)
        request = InvitationRequest.from_payload(payload, handler=self.handler)
        self.config.validate(handler=self.handler)
        self.appwrite_factory(self.config)

        outcomes = asyncio.run(self.dispatch(request))
        body = invitation_response(outcomes)

        log.info(f"✅ {body['message']}")
        return json_response(body, status=200 if body["success"] else 502)

    async def dispatch(self, request: InvitationRequest) -> List[DispatchOutcome]:
        """
        Send to every recipient concurrently and wait for all of them.

        Returns one outcome per entry in request.emails, in the same order.
        """
        log.info(f"Sending to emails: {list(request.emails)}")

        mailer = self.mailer_factory(self.config)
        try:
            await mailer.open()
        except Exception as err:
            # Nobody can be reached without a transport session
            log.error(f"❌ Could not open mail transport: {err}")
            return [
                DispatchOutcome(email=email, success=False, error=f"Mail transport unavailable: {err}")
                for email in request.emails
            ]

        try:
            tasks = [self.send_invitation(mailer, email, request) for email in request.emails]
            results = await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            await mailer.close()

        outcomes = []
        for email, result in zip(request.emails, results):
            if isinstance(result, BaseException):
                log.error(f"[{email}] ❌ Failed: {result}")
                outcomes.append(DispatchOutcome(email=email, success=False, error=str(result) or result.__class__.__name__))
            else:
                outcomes.append(result)

        sent = sum(1 for outcome in outcomes if outcome.success)
        log.info(f"Emails Sent: {sent}, Failed: {len(outcomes) - sent}")
        return outcomes

    async def send_invitation(self, mailer, email: str, request: InvitationRequest) -> DispatchOutcome:
        """Send a single invitation, turning any failure into a failed outcome."""
        if not is_valid_address(email):
            log.warning(f"[{email}] ❌ Not a valid email address, skipping")
            return DispatchOutcome(email=email, success=False, error="Invalid email address")

        message = build_invitation_email(
            email,
            request.test_link,
            request.test_code,
            escape=self.config.escape_html
        )
        timeout = self.config.send_timeout

        try:
            log.info(f"[{email}] Sending invitation...")
            # The mailer starts the clock once it holds the connection
            message_id = await mailer.send(
                to_email=message.to_email,
                subject=message.subject,
                html_body=message.html_body,
                text_body=message.text_body,
                timeout=timeout
            )
        except asyncio.TimeoutError:
            error = f"Timed out after {timeout:g}s"
        except Exception as err:
            error = str(err) or err.__class__.__name__
        else:
            log.info(f"[{email}] ✅ Invitation sent")
            return DispatchOutcome(email=email, success=True, message_id=message_id)

        log.error(f"[{email}] ❌ Failed: {error}")
        return DispatchOutcome(email=email, success=False, error=error)
