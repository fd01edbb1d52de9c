"""
Tests for session token verification.
"""

from datetime import timedelta

from jose import jwt

from sahem.auth.jwt import ALGORITHM, create_access_token, verify_token
from sahem.config import settings


class TestVerifyToken:
    def test_round_trip(self):
        token = create_access_token(7, "partner")
        assert verify_token(token) == {"user_id": 7, "role": "partner"}

    def test_expired(self):
        token = create_access_token(7, "admin", expires_delta=timedelta(seconds=-1))
        assert verify_token(token) is None

    def test_wrong_secret(self):
        token = jwt.encode({"sub": "7", "role": "admin", "type": "access"}, "other", algorithm=ALGORITHM)
        assert verify_token(token) is None

    def test_refresh_token_rejected(self):
        token = jwt.encode(
            {"sub": "7", "role": "admin", "type": "refresh"},
            settings.secret_key,
            algorithm=ALGORITHM,
        )
        assert verify_token(token) is None

    def test_missing_role(self):
        token = jwt.encode({"sub": "7", "type": "access"}, settings.secret_key, algorithm=ALGORITHM)
        assert verify_token(token) is None

    def test_non_numeric_subject(self):
        token = jwt.encode(
            {"sub": "abc", "role": "admin", "type": "access"},
            settings.secret_key,
            algorithm=ALGORITHM,
        )
        assert verify_token(token) is None

    def test_garbage(self):
        assert verify_token("not-a-token") is None
