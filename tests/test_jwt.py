import time

import pytest

from vett.jwt_utils import JWTError, decode, encode, issue_token_pair, kid_for, select_signing_secret


def test_issue_and_decode_pair():
    access, refresh, jti = issue_token_pair(user_id=5, secret="s1")
    a = decode(access, secret="s1", issuer="vett", audience="api")
    r = decode(refresh, secret="s1", issuer="vett", audience="api")
    assert a["sub"] == 5 and a["type"] == "access"
    assert r["type"] == "refresh" and r["jti"] == jti
    assert a["jti"] != jti


def test_rotation_accepts_previous_secret():
    access, _, _ = issue_token_pair(user_id=1, secret="old")
    payload = decode(access, secret="new", secrets_list=["new", "old"])
    assert payload["sub"] == 1
    with pytest.raises(JWTError):
        decode(access, secret="new", secrets_list=["new"])


def test_expired_token_rejected():
    now = int(time.time())
    token = encode(
        {"sub": 1, "jti": "x", "type": "access", "iss": "vett", "iat": now - 500, "exp": now - 100},
        secret="s",
        ttl=1,
    )
    with pytest.raises(JWTError, match="expired"):
        decode(token, secret="s", leeway=0)
    assert decode(token, secret="s", verify_exp=False)["sub"] == 1


@pytest.mark.parametrize("kwargs", [{"issuer": "other"}, {"audience": "web"}])
def test_issuer_and_audience_checked(kwargs):
    access, _, _ = issue_token_pair(user_id=1, secret="s")
    with pytest.raises(JWTError):
        decode(access, secret="s", **kwargs)


def test_malformed_and_revoked():
    with pytest.raises(JWTError):
        decode("not-a-token", secret="s")
    _, refresh, jti = issue_token_pair(user_id=1, secret="s")
    with pytest.raises(JWTError, match="revoked"):
        decode(refresh, secret="s", is_revoked=lambda j: j == jti)


def test_select_signing_secret():
    assert select_signing_secret("primary", ["rot1", "rot0"]) == "rot1"
    assert select_signing_secret("primary", []) == "primary"
    with pytest.raises(JWTError):
        select_signing_secret(None, None)
    assert len(kid_for("abc")) == 8
