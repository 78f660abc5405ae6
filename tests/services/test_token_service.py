from __future__ import annotations

from datetime import timedelta

import jwt
import pytest
from fastapi.testclient import TestClient

from bizsuite.services import token_service
from tests.conftest import auth


def test_round_trip_claims() -> None:
    token = token_service.create_access_token(sub="u-1", roles=["super_admin"])
    claims = token_service.decode_access_token(token)

    assert claims["sub"] == "u-1"
    assert claims["roles"] == ["super_admin"]
    assert claims["iss"] == token_service.ISSUER
    assert claims["aud"] == token_service.AUDIENCE


def test_expired_token_rejected() -> None:
    token = token_service.create_access_token(sub="u-1", ttl=timedelta(seconds=-5))
    with pytest.raises(jwt.ExpiredSignatureError):
        token_service.decode_access_token(token)


def test_tampered_token_rejected() -> None:
    token = token_service.create_access_token(sub="u-1")
    header, payload, signature = token.split(".")
    tampered = ".".join([header, payload, signature[::-1]])
    with pytest.raises(jwt.InvalidTokenError):
        token_service.decode_access_token(tampered)


@pytest.mark.parametrize(
    "token,detail",
    [
        ("not-a-jwt", "Invalid token"),
        (
            token_service.create_access_token(sub="u-1", ttl=timedelta(seconds=-5)),
            "Token expired",
        ),
    ],
    ids=["garbage", "expired"],
)
def test_bad_tokens_are_401(client: TestClient, token: str, detail: str) -> None:
    resp = client.get("/v1/notifications", headers=auth(token))
    assert resp.status_code == 401
    assert resp.json()["detail"] == detail
    assert resp.headers["www-authenticate"] == "Bearer"
