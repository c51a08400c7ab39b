"""HTTP constants for the request client.

Centralizes status codes, header names, and defaults shared across modules.
"""

# HTTP Status Code Ranges
HTTP_STATUS_OK_MIN = 200
HTTP_STATUS_OK_MAX = 300
HTTP_STATUS_NO_CONTENT = 204
HTTP_STATUS_UNAUTHORIZED = 401
HTTP_STATUS_FORBIDDEN = 403
HTTP_STATUS_TOO_MANY_REQUESTS = 429

# Header names
HEADER_AUTHORIZATION = "Authorization"
HEADER_RETRY_AFTER = "Retry-After"
HEADER_CONTENT_TYPE = "Content-Type"
HEADER_ACCEPT = "Accept"
HEADER_USER_AGENT = "User-Agent"

BEARER_PREFIX = "Bearer "

# Error body field consumed by the classifier
ERROR_MESSAGE_FIELD = "message"

# Token fields accepted in login/refresh responses
TOKEN_RESPONSE_FIELDS = ("token", "accessToken", "access_token")

# Persistent storage keys (token mirrors the dashboard's local storage key)
TOKEN_STORAGE_KEY = "authToken"  # noqa: S105
COOKIE_STORAGE_KEY = "cookies"

# Default endpoints
DEFAULT_REFRESH_PATH = "/auth/refresh"
DEFAULT_USER_AGENT = "dashboard-api-client/0.1.0"

# Log component name
COMPONENT_CLIENT = "client"
