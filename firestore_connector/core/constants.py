"""Firestore REST constants: endpoints, scopes and protocol limits.

Single source of truth for literals shared by the codec, builders and client.
"""

FIRESTORE_BASE_URL = "https://firestore.googleapis.com/v1"
FIRESTORE_SCOPE = "https://www.googleapis.com/auth/datastore"
DEFAULT_DATABASE_ID = "(default)"

# OAuth 2.0 service-account flow (RFC 7523)
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
JWT_BEARER_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_ALGORITHM = "RS256"

# Assertions live 60 minutes; bearer tokens are refreshed 5 minutes early.
DEFAULT_ASSERTION_LIFETIME_SECONDS = 60 * 60
DEFAULT_TOKEN_TTL_SECONDS = 55 * 60

# documents:batchWrite accepts at most 500 writes per request.
MAX_BATCH_WRITES = 500

DEFAULT_HTTP_TIMEOUT_SECONDS = 30.0
