"""Application-wide constants.

Single source of truth for Messenger Platform values and webhook
response literals.
"""

# =============================================================================
# Facebook API
# =============================================================================

# Facebook Graph API version
FACEBOOK_GRAPH_API_VERSION = "v18.0"

# Graph API host
FACEBOOK_GRAPH_API_BASE_URL = "https://graph.facebook.com"

# Send API path (relative to the versioned Graph API root)
FACEBOOK_SEND_API_PATH = "me/messages"

# Timeout for Facebook Graph API calls (seconds)
FACEBOOK_API_TIMEOUT_SECONDS = 10.0

# =============================================================================
# Webhook Verification
# =============================================================================

# Query parameters sent by the platform during the subscription handshake
HUB_VERIFY_TOKEN_PARAM = "hub.verify_token"
HUB_CHALLENGE_PARAM = "hub.challenge"

# Body returned (with status 200) when the verify token does not match.
# The platform expects 200 even on mismatch.
VERIFICATION_FAILED_BODY = "Error"

# =============================================================================
# Webhook Responses
# =============================================================================

WEBHOOK_ACK_STATUS = 200
WEBHOOK_ACK_BODY = "OK"

WEBHOOK_BAD_REQUEST_STATUS = 400
WEBHOOK_BAD_REQUEST_BODY = "Bad Request"

# =============================================================================
# Notification Channels
# =============================================================================

RECEIVE_EVENT = "receive"
MESSAGE_EVENT = "message"
ERROR_EVENT = "error"

NOTIFICATION_EVENTS = (RECEIVE_EVENT, MESSAGE_EVENT, ERROR_EVENT)

# =============================================================================
# Server
# =============================================================================

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8000

# Wait this long for pending subscriber tasks on shutdown (seconds)
GRACEFUL_SHUTDOWN_TIMEOUT_SECONDS = 30.0

CORRELATION_ID_HEADER = "X-Correlation-ID"
