"""
INVITATIONS Send Invitations Handler
====================================
API endpoint that emails a test link and code to a list of recipients.

POST body:
    {"emails": ["a@x.com", ...], "testLink": "https://...", "testCode": "ABC123"}
"""

from lambdas.common.config import InvitationConfig
from lambdas.common.errors import handle_errors
from lambdas.send_invitations.dispatcher import InvitationDispatcher, HANDLER


@handle_errors(HANDLER)
def handler(event, context):
    """
    Main Lambda handler for test invitations.

    Configuration is read from the environment on every invocation.
    """
    dispatcher = InvitationDispatcher(InvitationConfig.from_env())
    return dispatcher.handle(event)
