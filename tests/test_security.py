from datetime import timedelta

import pytest
from bson import ObjectId
from jose import JWTError

from megajob.core.security import (
    create_access_token,
    decode_token,
    get_password_hash,
    parse_expires_in,
    revoke_token,
    verify_password,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("7d", timedelta(days=7)),
        ("12h", timedelta(hours=12)),
        ("30m", timedelta(minutes=30)),
        ("45s", timedelta(seconds=45)),
        ("3600", timedelta(seconds=3600)),
    ],
)
def test_parse_expires_in(value, expected):
    assert parse_expires_in(value) == expected


def test_parse_expires_in_rejects_garbage():
    with pytest.raises(ValueError):
        parse_expires_in("soon")


def test_password_hash_verifies():
    hashed = get_password_hash("hunter22")
    assert hashed != "hunter22"
    assert hashed.startswith("$2b$12$")
    assert verify_password("hunter22", hashed)
    assert not verify_password("hunter23", hashed)


def test_verify_password_handles_missing_hash():
    assert not verify_password("anything", None)
    assert not verify_password("anything", "not-a-bcrypt-hash")


def test_token_claims():
    user = {"_id": ObjectId(), "email": "a@example.com", "role": "employer", "is_verified": True}
    claims = decode_token(create_access_token(user))

    assert claims["sub"] == str(user["_id"])
    assert claims["userId"] == str(user["_id"])
    assert claims["email"] == "a@example.com"
    assert claims["userType"] == "employer"
    assert claims["isVerified"] is True
    assert claims["jti"]
    assert claims["exp"] - claims["iat"] == 7 * 24 * 3600


def test_expired_token_is_rejected():
    user = {"_id": ObjectId(), "email": "a@example.com", "role": "job_seeker"}
    token = create_access_token(user, expires_delta=timedelta(seconds=-10))
    with pytest.raises(JWTError):
        decode_token(token)


def test_tampered_token_is_rejected():
    user = {"_id": ObjectId(), "email": "a@example.com", "role": "job_seeker"}
    token = create_access_token(user)
    with pytest.raises(JWTError):
        decode_token(token[:-2] + ("AA" if not token.endswith("AA") else "BB"))


async def test_revoke_token_stores_jti_until_expiry(kv, redis_client):
    user = {"_id": ObjectId(), "email": "a@example.com", "role": "job_seeker"}
    claims = decode_token(create_access_token(user))

    assert await revoke_token(claims, kv)
    assert await kv.get(f"revoked:{claims['jti']}") is True
    ttl = redis_client.ttls[f"megajobnepal:revoked:{claims['jti']}"]
    assert 0 < ttl <= 7 * 24 * 3600
