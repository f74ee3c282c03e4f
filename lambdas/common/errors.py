"""
INVITATIONS Error Classes
=========================
Standardized error handling for the invitation functions.

Features:
- Consistent failure envelope ({"success": false, "message": ...})
- HTTP status codes
- Easy to catch and handle
- Serializable for API responses
"""

import json
import traceback
from functools import wraps
from typing import Optional

from lambdas.common.constants import JSON_HEADERS
from lambdas.common.logger import get_logger

log = get_logger(__file__)


class InvitationError(Exception):
    """
    Base exception class for all invitation errors.

    Usage:
        raise InvitationError("Something went wrong", status=400)

    Or catch and convert to response:
        except InvitationError as e:
            return e.to_response()
    """

    kind = "UnexpectedError"

    def __init__(
        self,
        message: str,
        handler: str = "unknown",
        function: str = "unknown",
        status: int = 500,
        details: Optional[dict] = None
    ):
        self.message = message
        self.handler = handler
        self.function = function
        self.status = status
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert error to the failure envelope returned to callers."""
        return {
            "success": False,
            "message": self.message,
            "error": {
                "type": self.kind,
                "handler": self.handler,
                "function": self.function,
                "status": self.status,
                **self.details
            }
        }

    def to_response(self, is_api: bool = True) -> dict:
        """Convert error to Lambda response format."""
        body = self.to_dict()
        return {
            "statusCode": self.status,
            "headers": dict(JSON_HEADERS),
            "body": json.dumps(body) if is_api else body,
            "isBase64Encoded": False
        }

    def log_error(self):
        """Log the error with full context."""
        log.error(f"💥 {self.kind} in {self.handler}.{self.function}: {self.message}")
        if self.details:
            log.error(f"   Details: {self.details}")

    def __str__(self) -> str:
        return self.message


# ============================================
# Request Errors
# ============================================

class MissingPayloadError(InvitationError):
    """Raised when the request carries no body."""

    kind = "MissingPayload"

    def __init__(self, message: str = "No payload provided", handler: str = "unknown", function: str = "unknown"):
        super().__init__(
            message=message,
            handler=handler,
            function=function,
            status=400
        )


class MalformedPayloadError(InvitationError):
    """Raised when the request body is not a JSON object."""

    kind = "MalformedPayload"

    def __init__(self, message: str = "Invalid JSON in payload", handler: str = "unknown", function: str = "unknown"):
        super().__init__(
            message=message,
            handler=handler,
            function=function,
            status=400
        )


class InvalidFieldsError(InvitationError):
    """Raised when input validation fails."""

    kind = "InvalidFields"

    def __init__(self, message: str, handler: str = "unknown", function: str = "unknown", field: str = None):
        details = {"field": field} if field else {}
        super().__init__(
            message=message,
            handler=handler,
            function=function,
            status=400,
            details=details
        )


# ============================================
# Operator Errors
# ============================================

class MissingConfigurationError(InvitationError):
    """Raised when required environment configuration is absent."""

    kind = "MissingConfiguration"

    def __init__(self, missing: list, handler: str = "config", function: str = "unknown"):
        self.missing = list(missing)
        super().__init__(
            message=f"Configuration missing in environment variables: {', '.join(self.missing)}",
            handler=handler,
            function=function,
            status=500,
            details={"missing": self.missing}
        )


# ============================================
# Transport Errors
# ============================================

class RecipientSendError(InvitationError):
    """
    Raised by a mailer when a single send fails.
    Caught per recipient by the dispatcher and never returned as a request failure.
    """

    kind = "RecipientSendFailure"

    def __init__(self, message: str, handler: str = "mailer", function: str = "send", recipient: str = None):
        details = {"recipient": recipient} if recipient else {}
        super().__init__(
            message=message,
            handler=handler,
            function=function,
            status=502,
            details=details
        )


# ============================================
# Error Handler Decorator
# ============================================

def handle_errors(handler_name: str):
    """
    Decorator to handle errors consistently across handlers.

    Usage:
        @handle_errors("send-invitations")
        def handler(event, context):
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(event, context):
            try:
                return func(event, context)
            except InvitationError as e:
                e.log_error()
                return e.to_response()
            except Exception as e:
                # Catch unexpected errors
                log.error(f"💥 Unexpected error in {handler_name}: {str(e)}")
                log.error(traceback.format_exc())

                error = InvitationError(
                    message=str(e) or "Failed to send invitations",
                    handler=handler_name,
                    function=func.__name__,
                    status=500
                )
                return error.to_response()
        return wrapper
    return decorator
