"""
INVITATIONS Constants
=====================
Environment variable names, defaults and fixed copy shared by all functions.
"""

# ============================================
# Identity SDK (Appwrite)
# ============================================

APPWRITE_ENDPOINT_VAR = "APPWRITE_ENDPOINT"
APPWRITE_PROJECT_ID_VAR = "APPWRITE_FUNCTION_PROJECT_ID"
APPWRITE_API_KEY_VAR = "APPWRITE_API_KEY"

# ============================================
# Mail Account
# ============================================

EMAIL_USER_VAR = "EMAIL_USER"
EMAIL_APP_PASSWORD_VAR = "EMAIL_APP_PASSWORD"
EMAIL_FROM_NAME_VAR = "EMAIL_FROM_NAME"
EMAIL_TRANSPORT_VAR = "EMAIL_TRANSPORT"

TRANSPORT_SMTP = "smtp"
TRANSPORT_SES = "ses"
SUPPORTED_TRANSPORTS = (TRANSPORT_SMTP, TRANSPORT_SES)

SMTP_HOST_VAR = "SMTP_HOST"
SMTP_PORT_VAR = "SMTP_PORT"
SMTP_USE_TLS_VAR = "SMTP_USE_TLS"

DEFAULT_SMTP_HOST = "smtp.gmail.com"
DEFAULT_SMTP_PORT = 465

AWS_REGION_VAR = "AWS_REGION"
AWS_DEFAULT_REGION = "us-east-1"

# ============================================
# Dispatch
# ============================================

SEND_TIMEOUT_VAR = "INVITE_SEND_TIMEOUT_SECONDS"
# Unset means no per-send timeout
DEFAULT_SEND_TIMEOUT_SECONDS = None

ESCAPE_HTML_VAR = "INVITE_ESCAPE_HTML"

LOG_LEVEL_VAR = "LOG_LEVEL"

INVITATION_SUBJECT = "Invitation to Participate in a Test"

JSON_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Content-Type": "application/json"
}
