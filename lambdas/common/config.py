"""
INVITATIONS Configuration
=========================
Process configuration read from the environment once per invocation and
handed to the dispatcher explicitly, so tests can swap in their own.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from lambdas.common.constants import (
    APPWRITE_ENDPOINT_VAR,
    APPWRITE_PROJECT_ID_VAR,
    APPWRITE_API_KEY_VAR,
    EMAIL_USER_VAR,
    EMAIL_APP_PASSWORD_VAR,
    EMAIL_FROM_NAME_VAR,
    EMAIL_TRANSPORT_VAR,
    TRANSPORT_SMTP,
    TRANSPORT_SES,
    SUPPORTED_TRANSPORTS,
    SMTP_HOST_VAR,
    SMTP_PORT_VAR,
    SMTP_USE_TLS_VAR,
    DEFAULT_SMTP_HOST,
    DEFAULT_SMTP_PORT,
    AWS_REGION_VAR,
    AWS_DEFAULT_REGION,
    SEND_TIMEOUT_VAR,
    DEFAULT_SEND_TIMEOUT_SECONDS,
    ESCAPE_HTML_VAR
)
from lambdas.common.errors import MissingConfigurationError

TRUTHY = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class InvitationConfig:
    """Everything the dispatcher needs from the environment."""

    appwrite_endpoint: Optional[str] = None
    appwrite_project_id: Optional[str] = None
    appwrite_api_key: Optional[str] = None
    email_user: Optional[str] = None
    email_app_password: Optional[str] = None
    email_from_name: Optional[str] = None
    transport: str = TRANSPORT_SMTP
    smtp_host: str = DEFAULT_SMTP_HOST
    smtp_port: Optional[int] = DEFAULT_SMTP_PORT
    smtp_use_tls: bool = True
    aws_region: str = AWS_DEFAULT_REGION
    send_timeout: Optional[float] = DEFAULT_SEND_TIMEOUT_SECONDS
    escape_html: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = None) -> "InvitationConfig":
        """
        Read configuration from environment variables.

        Presence of the required values is checked later by validate(), so a
        half-configured environment still loads.
        """
        env = os.environ if environ is None else environ

        def value(name):
            raw = env.get(name)
            return raw.strip() if raw and raw.strip() else None

        return cls(
            appwrite_endpoint=value(APPWRITE_ENDPOINT_VAR),
            appwrite_project_id=value(APPWRITE_PROJECT_ID_VAR),
            appwrite_api_key=value(APPWRITE_API_KEY_VAR),
            email_user=value(EMAIL_USER_VAR),
            email_app_password=value(EMAIL_APP_PASSWORD_VAR),
            email_from_name=value(EMAIL_FROM_NAME_VAR),
            transport=(value(EMAIL_TRANSPORT_VAR) or TRANSPORT_SMTP).lower(),
            smtp_host=value(SMTP_HOST_VAR) or DEFAULT_SMTP_HOST,
            smtp_port=_int_setting(value(SMTP_PORT_VAR), DEFAULT_SMTP_PORT),
            smtp_use_tls=_bool_setting(value(SMTP_USE_TLS_VAR), True),
            aws_region=value(AWS_REGION_VAR) or AWS_DEFAULT_REGION,
            send_timeout=_timeout_setting(value(SEND_TIMEOUT_VAR)),
            escape_html=_bool_setting(value(ESCAPE_HTML_VAR), False)
        )

    def missing(self) -> list:
        """Names of required environment variables that are not set."""
        required = {
            APPWRITE_ENDPOINT_VAR: self.appwrite_endpoint,
            APPWRITE_PROJECT_ID_VAR: self.appwrite_project_id,
            APPWRITE_API_KEY_VAR: self.appwrite_api_key,
            EMAIL_USER_VAR: self.email_user
        }
        if self.transport == TRANSPORT_SMTP:
            required[EMAIL_APP_PASSWORD_VAR] = self.email_app_password
            required[SMTP_PORT_VAR] = self.smtp_port

        return [name for name, setting in required.items() if not setting]

    def validate(self, handler: str = "config"):
        """
        Make sure dispatch can proceed.

        Raises:
            MissingConfigurationError: A required variable is unset, or the
                transport name is not one we know how to build.
        """
        missing = self.missing()
        if missing:
            raise MissingConfigurationError(missing, handler=handler, function="validate")

        if self.transport not in SUPPORTED_TRANSPORTS:
            raise MissingConfigurationError(
                [f"{EMAIL_TRANSPORT_VAR} (unsupported value '{self.transport}')"],
                handler=handler,
                function="validate"
            )

    @property
    def uses_ses(self) -> bool:
        return self.transport == TRANSPORT_SES


def _bool_setting(raw: Optional[str], default: bool) -> bool:
    if raw is None:
        return default
    return raw.lower() in TRUTHY


def _int_setting(raw: Optional[str], default: int) -> Optional[int]:
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        # Reported as missing by validate()
        return None


def _timeout_setting(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return DEFAULT_SEND_TIMEOUT_SECONDS
    try:
        timeout = float(raw)
    except ValueError:
        return DEFAULT_SEND_TIMEOUT_SECONDS
    # 0 or below turns the per-send timeout off
    return timeout if timeout > 0 else None
