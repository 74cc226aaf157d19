"""Bearer token signing for backend service calls.

Every service validates an HS256 JWT signed with the shared secret. Callers
only ever see ``get_auth_token()``; the claim layout is this module's concern.
"""

from datetime import UTC, datetime

import jwt

from src.config import get_settings

TOKEN_ALGORITHM = "HS256"
TOKEN_AUDIENCE = ["nl-sql", "rag", "ts-forecast", "agent-coordinator"]


def get_auth_token(now: datetime | None = None) -> str:
    """Sign a short-lived token accepted by all four backend services."""
    settings = get_settings()
    issued_at = int((now or datetime.now(UTC)).timestamp())
    payload = {
        "sub": settings.jwt_subject,
        "iat": issued_at,
        "exp": issued_at + settings.jwt_ttl_seconds,
        "aud": TOKEN_AUDIENCE,
    }
    return jwt.encode(payload, settings.jwt_secret.get_secret_value(), algorithm=TOKEN_ALGORITHM)
