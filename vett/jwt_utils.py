"""JWT utilities (HS256).

 - Claim enforcement: iss, aud, iat, exp, nbf with configurable leeway.
 - Future iat guard (> leeway) rejected.
 - jti revocation hook: is_revoked(jti) -> bool.
 - Rotation: several shared secrets accepted for verification; the first signs.

Tokens carry identity only (sub). Role is read from the database on every
request, so a role change never waits for a token to expire.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import secrets
import time
from collections.abc import Callable
from typing import Any, Literal, TypedDict


class JWTError(Exception):
    pass


DEFAULT_ACCESS_TTL = 3600  # 1h
DEFAULT_REFRESH_TTL = 1209600  # 14 days
SKEW_SECS = 30

ALG_HS256 = "HS256"

TokenType = Literal["access", "refresh"]


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64url_decode(data: str) -> bytes:
    pad = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + pad)


def _sign(msg: bytes, secret: str) -> str:
    sig = hmac.new(secret.encode(), msg, hashlib.sha256).digest()
    return _b64url(sig)


def generate_jti() -> str:
    return secrets.token_hex(16)


def kid_for(secret: str) -> str:
    return hashlib.sha256(secret.encode()).hexdigest()[:8]


def encode(payload: dict[str, Any], *, secret: str, ttl: int, kid: str | None = None) -> str:
    now = int(time.time())
    header = {"alg": ALG_HS256, "typ": "JWT"}
    if kid:
        header["kid"] = kid
    pl = payload.copy()
    pl.setdefault("iat", now)
    pl.setdefault("exp", now + ttl)
    header_b = _b64url(json.dumps(header, separators=(",", ":")).encode())
    payload_b = _b64url(json.dumps(pl, separators=(",", ":")).encode())
    msg = f"{header_b}.{payload_b}".encode()
    sig = _sign(msg, secret)
    return f"{header_b}.{payload_b}.{sig}"


class TokenPayload(TypedDict):
    sub: int
    jti: str
    iat: int
    exp: int
    type: TokenType
    iss: str


def decode(
    token: str,
    *,
    secret: str | None = None,
    secrets_list: list[str] | None = None,
    verify_exp: bool = True,
    issuer: str | None = None,
    audience: str | None = None,
    leeway: int = SKEW_SECS,
    is_revoked: Callable[[str], bool] | None = None,
) -> TokenPayload:
    try:
        header_b, payload_b, sig = token.split(".")
    except ValueError as e:
        raise JWTError("malformed token") from e
    msg = f"{header_b}.{payload_b}".encode()
    try:
        header_raw = json.loads(_b64url_decode(header_b))
    except ValueError as e:
        raise JWTError("bad header") from e
    if not isinstance(header_raw, dict):
        raise JWTError("bad header type")
    if header_raw.get("alg") != ALG_HS256:
        raise JWTError("alg")
    secrets_to_try: list[str] = []
    if secret:
        secrets_to_try.append(secret)
    for s in secrets_list or []:
        if s and s not in secrets_to_try:
            secrets_to_try.append(s)
    if not secrets_to_try:
        raise JWTError("bad signature")
    for sec in secrets_to_try:
        if hmac.compare_digest(_sign(msg, sec), sig):
            break
    else:
        raise JWTError("bad signature")
    try:
        raw = json.loads(_b64url_decode(payload_b))
    except ValueError as e:
        raise JWTError("bad payload") from e
    if not isinstance(raw, dict):
        raise JWTError("bad payload type")
    token_type = raw.get("type")
    if token_type not in ("access", "refresh"):
        raise JWTError("unknown token type")

    def _req(key: str, t: type) -> Any:
        if key not in raw:
            raise JWTError(f"missing claim {key}")
        val = raw[key]
        if not isinstance(val, t) or isinstance(val, bool):
            raise JWTError(f"bad claim type {key}")
        return val

    sub = _req("sub", int)
    jti = _req("jti", str)
    iat = _req("iat", int)
    exp = _req("exp", int)
    iss_val = _req("iss", str)
    nbf_val = raw.get("nbf")
    if nbf_val is not None and not isinstance(nbf_val, int):
        raise JWTError("nbf")
    now = int(time.time())
    if verify_exp:
        if now > exp + leeway:
            raise JWTError("token expired")
        if nbf_val is not None and now + leeway < nbf_val:
            raise JWTError("token not yet valid")
        if iat > now + leeway:
            raise JWTError("iat_future")
    if issuer and iss_val != issuer:
        raise JWTError("iss")
    if audience:
        aud_val = raw.get("aud")
        if isinstance(aud_val, str):
            ok = aud_val == audience
        elif isinstance(aud_val, list):
            ok = audience in aud_val
        else:
            ok = False
        if not ok:
            raise JWTError("aud")
    if is_revoked and is_revoked(jti):
        raise JWTError("revoked")
    return TokenPayload(sub=sub, jti=jti, iat=iat, exp=exp, type=token_type, iss=iss_val)


def issue_token_pair(
    *,
    user_id: int,
    secret: str,
    access_ttl: int = DEFAULT_ACCESS_TTL,
    refresh_ttl: int = DEFAULT_REFRESH_TTL,
    issuer: str = "vett",
    audience: str = "api",
) -> tuple[str, str, str]:
    jti = generate_jti()
    now = int(time.time())
    base: dict[str, Any] = {"sub": user_id, "iss": issuer, "aud": audience, "iat": now}
    access_payload = {**base, "jti": generate_jti(), "type": "access", "exp": now + access_ttl}
    refresh_payload = {**base, "jti": jti, "type": "refresh", "exp": now + refresh_ttl}
    kid = kid_for(secret)
    access_token = encode(access_payload, secret=secret, ttl=access_ttl, kid=kid)
    refresh_token = encode(refresh_payload, secret=secret, ttl=refresh_ttl, kid=kid)
    return access_token, refresh_token, jti


def select_signing_secret(primary: str | None, candidates: list[str] | None) -> str:
    """Return first rotation secret if configured, else the primary; raise if none.

    JWT_SECRETS lists the signing secret first while still accepting the
    previous ones for verification.
    """
    if candidates:
        for c in candidates:
            if c:
                return c
    if primary:
        return primary
    raise JWTError("no signing secret available")


__all__ = [
    "JWTError",
    "DEFAULT_ACCESS_TTL",
    "DEFAULT_REFRESH_TTL",
    "TokenPayload",
    "encode",
    "decode",
    "issue_token_pair",
    "select_signing_secret",
]
