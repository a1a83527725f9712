# tests/test_auth.py
from datetime import datetime, timedelta, timezone

import jwt

from api.auth import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)
from api.config import settings


class TestPasswords:
    def test_hash_verifies(self):
        hashed = hash_password("Sup3rSecret")
        assert hashed != "Sup3rSecret"
        assert verify_password("Sup3rSecret", hashed)

    def test_wrong_password(self):
        assert not verify_password("nope", hash_password("Sup3rSecret"))

    def test_malformed_hash(self):
        assert not verify_password("Sup3rSecret", "not-a-bcrypt-hash")
        assert not verify_password("Sup3rSecret", "")


class TestTokens:
    def test_access_token_claims(self):
        payload = decode_token(create_access_token(7, "bob@finma.dev", "user"))
        assert payload["sub"] == "7"
        assert payload["email"] == "bob@finma.dev"
        assert payload["role"] == "user"
        assert payload["type"] == "access"

    def test_refresh_tokens_are_unique(self):
        first, expires_at = create_refresh_token(7)
        second, _ = create_refresh_token(7)
        assert first != second
        assert decode_token(first)["type"] == "refresh"
        assert expires_at > datetime.now(timezone.utc) + timedelta(days=settings.refresh_token_expire_days - 1)

    def test_expired_token_is_rejected(self):
        token = jwt.encode(
            {"sub": "7", "type": "access", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        assert decode_token(token) is None

    def test_foreign_signature_is_rejected(self):
        token = jwt.encode({"sub": "7", "type": "access"}, "another-secret-0123456789abcdef0123", algorithm="HS256")
        assert decode_token(token) is None
