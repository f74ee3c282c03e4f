"""
INVITATIONS Email Template
==========================
Fixed invitation email with the test link and code substituted in.
"""

import html
from dataclasses import dataclass

from email_validator import EmailNotValidError, validate_email

from lambdas.common.constants import INVITATION_SUBJECT


@dataclass(frozen=True)
class InvitationEmail:
    to_email: str
    subject: str
    html_body: str
    text_body: str


def is_valid_address(email: str) -> bool:
    """Syntax check only; no DNS lookup for the domain."""
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def generate_invitation_html(test_link: str, test_code: str, escape: bool = False) -> str:
    """
    Generate the HTML body for a test invitation.

    The link is used for both the href and the visible text. Values are
    inserted verbatim unless escape is set.
    """
    if escape:
        test_link = html.escape(test_link, quote=True)
        test_code = html.escape(test_code, quote=True)

    return f'''
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
    <h2>You've Been Invited to Participate in a Test</h2>
    <p>You can access the test using the following details:</p>
    <p><strong>Test Link:</strong> <a href="{test_link}">{test_link}</a></p>
    <p><strong>Test Code:</strong> {test_code}</p>
    <p>Please click the link above to begin the test.</p>
    <p>If you have any questions, please contact the test administrator.</p>
</div>
'''.strip()


def generate_plain_text_email(test_link: str, test_code: str) -> str:
    return f"""
You've Been Invited to Participate in a Test

You can access the test using the following details:

Test Link: {test_link}
Test Code: {test_code}

Please open the link above to begin the test.
If you have any questions, please contact the test administrator.
    """.strip()


def build_invitation_email(to_email: str, test_link: str, test_code: str, escape: bool = False) -> InvitationEmail:
    return InvitationEmail(
        to_email=to_email,
        subject=INVITATION_SUBJECT,
        html_body=generate_invitation_html(test_link, test_code, escape=escape),
        text_body=generate_plain_text_email(test_link, test_code)
    )
