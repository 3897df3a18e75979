"""
Tests for JWT verification and role checks.
"""

import jwt
import pytest
from fastapi import HTTPException

from kds_shared.config.settings import JWT_AUDIENCE, JWT_ISSUER, JWT_SECRET
from kds_shared.security.auth import (
    actor_from_context,
    get_bearer_token,
    require_roles,
    sign_jwt,
    verify_jwt,
)


class TestTokenVerification:

    def test_round_trip_claims(self):
        token = sign_jwt({"sub": "7", "roles": ["CHEF"]})
        payload = verify_jwt(token)
        assert payload["sub"] == "7"
        assert payload["roles"] == ["CHEF"]
        assert payload["iss"] == JWT_ISSUER
        assert payload["aud"] == JWT_AUDIENCE

    def test_expired_token(self):
        token = sign_jwt({"sub": "7", "roles": ["CHEF"]}, ttl_seconds=-10)
        with pytest.raises(HTTPException) as exc_info:
            verify_jwt(token)
        assert exc_info.value.status_code == 401
        assert "expired" in exc_info.value.detail

    def test_wrong_secret(self):
        token = jwt.encode(
            {"sub": "7", "iss": JWT_ISSUER, "aud": JWT_AUDIENCE},
            "another-secret-that-is-long-enough-for-hs256",
            algorithm="HS256",
        )
        with pytest.raises(HTTPException) as exc_info:
            verify_jwt(token)
        assert exc_info.value.status_code == 401

    def test_wrong_audience(self):
        token = jwt.encode(
            {"sub": "7", "iss": JWT_ISSUER, "aud": "someone-else"}, JWT_SECRET, algorithm="HS256"
        )
        with pytest.raises(HTTPException):
            verify_jwt(token)

    def test_non_numeric_subject(self):
        token = sign_jwt({"sub": "chef", "roles": ["CHEF"]})
        with pytest.raises(HTTPException) as exc_info:
            verify_jwt(token)
        assert "subject" in exc_info.value.detail

    def test_refresh_token_rejected(self):
        token = jwt.encode(
            {"sub": "7", "iss": JWT_ISSUER, "aud": JWT_AUDIENCE, "type": "refresh"},
            JWT_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(HTTPException):
            verify_jwt(token)

    def test_bearer_header_parsing(self):
        assert get_bearer_token("Bearer abc") == "abc"
        with pytest.raises(HTTPException):
            get_bearer_token(None)
        with pytest.raises(HTTPException):
            get_bearer_token("Token abc")


class TestRoles:

    def test_require_roles(self):
        require_roles({"roles": ["CHEF"]}, ["CHEF", "ADMIN"])
        with pytest.raises(HTTPException) as exc_info:
            require_roles({"roles": ["WAITER"]}, ["CHEF"])
        assert exc_info.value.status_code == 403

    def test_actor_from_context(self):
        assert actor_from_context({"sub": "4", "roles": ["BARTENDER", "CHEF"]}) == (4, "BARTENDER")
        assert actor_from_context({"sub": "4"}) == (4, None)


class TestEndpointAuth:

    def test_feed_requires_token(self, client):
        response = client.get("/api/kds/tickets", params={"station": "KITCHEN"})
        assert response.status_code == 401

    def test_waiter_cannot_read_station_feed(self, client, waiter_headers):
        response = client.get("/api/kds/tickets", params={"station": "KITCHEN"}, headers=waiter_headers)
        assert response.status_code == 403
