"""
INVITATIONS Utility Helpers
===========================
Request parsing and response building shared by the Lambda handlers.
"""

import base64
import binascii
import json

from lambdas.common.constants import JSON_HEADERS
from lambdas.common.errors import MissingPayloadError, MalformedPayloadError
from lambdas.common.logger import get_logger

log = get_logger(__file__)


# ============================================
# Requests
# ============================================

def get_raw_body(event: dict):
    """
    Pull the request body out of a Lambda event.

    API Gateway puts it under "body"; Appwrite-style invocations use "payload".
    """
    if not isinstance(event, dict):
        return None
    body = event.get("body")
    if body is None:
        body = event.get("payload")
    return body


def parse_body(event: dict, handler: str = "unknown") -> dict:
    """
    Parse the JSON body of a Lambda event into a dict.

    Raises:
        MissingPayloadError: No body, or a blank one
        MalformedPayloadError: Body is not a JSON object
    """
    body = get_raw_body(event)

    if isinstance(body, dict):
        # Direct invocation with an already-decoded body
        return body

    if isinstance(body, (bytes, bytearray)):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as err:
            raise MalformedPayloadError(
                message=f"Invalid UTF-8 in payload: {err}",
                handler=handler,
                function="parse_body"
            ) from err

    if body is None or (isinstance(body, str) and not body.strip()):
        raise MissingPayloadError(handler=handler, function="parse_body")

    if not isinstance(body, str):
        raise MalformedPayloadError(
            message=f"Invalid payload type: {type(body).__name__}",
            handler=handler,
            function="parse_body"
        )

    if event.get("isBase64Encoded"):
        try:
            body = base64.b64decode(body, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as err:
            raise MalformedPayloadError(
                message=f"Invalid base64 payload: {err}",
                handler=handler,
                function="parse_body"
            ) from err

    try:
        parsed = json.loads(body)
    except ValueError as err:
        log.warning(f"Could not decode request body: {err}")
        raise MalformedPayloadError(handler=handler, function="parse_body") from err

    if not isinstance(parsed, dict):
        raise MalformedPayloadError(
            message="Invalid JSON in payload: expected an object",
            handler=handler,
            function="parse_body"
        )

    return parsed


# ============================================
# Responses
# ============================================

def json_response(body: dict, status: int = 200, is_api: bool = True) -> dict:
    """Wrap a body in the Lambda proxy response format."""
    return {
        "statusCode": status,
        "headers": dict(JSON_HEADERS),
        "body": json.dumps(body) if is_api else body,
        "isBase64Encoded": False
    }


def invitation_response(outcomes: list) -> dict:
    """
    Build the invitation summary from per-recipient outcomes.

    Outcomes are split into successful and failed lists, keeping their order.
    The request counts as a success when at least one invitation went out.
    """
    successful = [outcome.to_dict() for outcome in outcomes if outcome.success]
    failed = [outcome.to_dict() for outcome in outcomes if not outcome.success]

    return {
        "success": len(successful) > 0,
        "message": f"Successfully sent {len(successful)} out of {len(outcomes)} invitations",
        "details": {
            "successful": successful,
            "failed": failed
        }
    }
