"""
Pytest fixtures for the invitation functions.
"""

import asyncio
import json

import pytest

from lambdas.common.config import InvitationConfig
from lambdas.common.errors import RecipientSendError


VALID_ENV = {
    "APPWRITE_ENDPOINT": "https://cloud.appwrite.io/v1",
    "APPWRITE_FUNCTION_PROJECT_ID": "project-123",
    "APPWRITE_API_KEY": "secret-api-key",
    "EMAIL_USER": "tests@example.com",
    "EMAIL_APP_PASSWORD": "app-password",
}


class FakeMailer:
    """In-memory mailer that records sends and fails on request."""

    def __init__(self, failures: dict = None, hang: tuple = (), open_error: Exception = None, delay: float = 0):
        self.failures = failures or {}
        self.hang = hang
        self.open_error = open_error
        self.delay = delay
        self.sent = []
        self.opened = False
        self.closed = False

    async def open(self):
        if self.open_error:
            raise self.open_error
        self.opened = True

    async def close(self):
        self.closed = True

    async def send(self, to_email, subject, html_body, text_body=None, timeout=None):
        self.sent.append({
            "to_email": to_email,
            "subject": subject,
            "html_body": html_body,
            "text_body": text_body
        })
        deliver = self.deliver(to_email)
        await asyncio.wait_for(deliver, timeout) if timeout else await deliver
        if to_email in self.failures:
            raise RecipientSendError(self.failures[to_email], recipient=to_email)
        return f"<{len(self.sent)}@fake.mailer>"

    async def deliver(self, to_email):
        if to_email in self.hang:
            await asyncio.sleep(10)
        await asyncio.sleep(self.delay)


class MailerFactory:
    """Hands out FakeMailers and remembers each one it built."""

    def __init__(self, **mailer_kwargs):
        self.mailer_kwargs = mailer_kwargs
        self.mailers = []

    def __call__(self, config):
        mailer = FakeMailer(**self.mailer_kwargs)
        self.mailers.append(mailer)
        return mailer

    @property
    def sent(self):
        return [message for mailer in self.mailers for message in mailer.sent]


def make_event(payload=None, raw_body=None) -> dict:
    """Build an API Gateway proxy event."""
    body = raw_body if raw_body is not None else json.dumps(payload)
    return {"httpMethod": "POST", "path": "/invitations/send", "body": body}


def response_body(response: dict) -> dict:
    return json.loads(response["body"])


# --- Fixtures ---

@pytest.fixture
def valid_env():
    return dict(VALID_ENV)


@pytest.fixture
def config(valid_env) -> InvitationConfig:
    return InvitationConfig.from_env(valid_env)


@pytest.fixture
def payload() -> dict:
    return {
        "emails": ["a@x.com", "b@x.com"],
        "testLink": "https://t/1",
        "testCode": "ABC123"
    }


@pytest.fixture
def appwrite_calls():
    return []


@pytest.fixture
def appwrite_factory(appwrite_calls):
    def factory(config):
        appwrite_calls.append(config)
        return object()
    return factory


@pytest.fixture
def env(monkeypatch, valid_env):
    """Put a complete configuration into os.environ."""
    for name, value in valid_env.items():
        monkeypatch.setenv(name, value)
    for name in ("EMAIL_TRANSPORT", "EMAIL_FROM_NAME", "SMTP_PORT", "INVITE_SEND_TIMEOUT_SECONDS", "INVITE_ESCAPE_HTML"):
        monkeypatch.delenv(name, raising=False)
    return valid_env
