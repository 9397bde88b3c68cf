from auth.context import AuthContext
from auth.jwt import TokenValidationError, decode_bearer, issue_token, user_id_from_claims
from auth.middleware import AuthMiddleware

__all__ = [
    "AuthContext",
    "AuthMiddleware",
    "TokenValidationError",
    "decode_bearer",
    "issue_token",
    "user_id_from_claims",
]
