"""Unit tests for backend bearer token signing."""

from datetime import UTC, datetime
from typing import Any

import jwt
import pytest

from src.clients.auth import TOKEN_ALGORITHM, TOKEN_AUDIENCE, get_auth_token
from src.clients.http import auth_headers


class TestGetAuthToken:
    def test_claims(self, mock_settings: Any) -> None:
        token = get_auth_token()
        claims = jwt.decode(token, "test-secret-key", algorithms=[TOKEN_ALGORITHM], audience="rag")
        assert claims["sub"] == "frontend-user"
        assert claims["exp"] - claims["iat"] == 3600
        assert claims["aud"] == TOKEN_AUDIENCE

    @pytest.mark.parametrize("audience", ["nl-sql", "rag", "ts-forecast", "agent-coordinator"])
    def test_accepted_by_every_service(self, mock_settings: Any, audience: str) -> None:
        token = get_auth_token()
        assert jwt.decode(token, "test-secret-key", algorithms=[TOKEN_ALGORITHM], audience=audience)

    def test_wrong_secret_rejected(self, mock_settings: Any) -> None:
        token = get_auth_token()
        with pytest.raises(jwt.InvalidSignatureError):
            jwt.decode(token, "other-secret", algorithms=[TOKEN_ALGORITHM], audience="rag")

    def test_expired_token_rejected(self, mock_settings: Any) -> None:
        token = get_auth_token(now=datetime(2020, 1, 1, tzinfo=UTC))
        with pytest.raises(jwt.ExpiredSignatureError):
            jwt.decode(token, "test-secret-key", algorithms=[TOKEN_ALGORITHM], audience="rag")


class TestAuthHeaders:
    def test_bearer_header(self, mock_settings: Any) -> None:
        headers = auth_headers()
        assert headers["Authorization"].startswith("Bearer ")
        token = headers["Authorization"].removeprefix("Bearer ")
        assert jwt.decode(token, "test-secret-key", algorithms=[TOKEN_ALGORITHM], audience="nl-sql")["sub"] == (
            "frontend-user"
        )
