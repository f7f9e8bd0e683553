from datetime import datetime, timedelta, timezone

import jwt

from studycards.core.config import Settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def _encode(settings: Settings, secret: str, claims: dict, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        **claims,
        "iat": now,
        "exp": now + lifetime,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
    }
    return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)


def _decode(settings: Settings, secret: str, token: str, expected_type: str) -> dict:
    payload = jwt.decode(
        token,
        secret,
        algorithms=[settings.jwt_algorithm],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
        options={"require": ["exp", "iat", "sub"]},
    )
    if payload.get("type") != expected_type:
        raise jwt.InvalidTokenError(f"Expected a {expected_type} token")
    return payload


def create_access_token(
    settings: Settings,
    *,
    user_id: int,
    role: str,
    token_version: int,
    expires_minutes: int | None = None,
) -> str:
    expire_minutes = expires_minutes or settings.jwt_access_expires_minutes
    claims = {"sub": str(user_id), "role": role, "ver": token_version, "type": ACCESS_TOKEN_TYPE}
    return _encode(settings, settings.jwt_secret_key, claims, timedelta(minutes=expire_minutes))


def create_refresh_token(
    settings: Settings,
    *,
    user_id: int,
    role: str,
    token_version: int,
    expires_days: int | None = None,
) -> str:
    expire_days = expires_days or settings.jwt_refresh_expires_days
    claims = {"sub": str(user_id), "role": role, "ver": token_version, "type": REFRESH_TOKEN_TYPE}
    return _encode(settings, settings.jwt_refresh_secret_key, claims, timedelta(days=expire_days))


def decode_access_token(settings: Settings, token: str) -> dict:
    return _decode(settings, settings.jwt_secret_key, token, ACCESS_TOKEN_TYPE)


def decode_refresh_token(settings: Settings, token: str) -> dict:
    return _decode(settings, settings.jwt_refresh_secret_key, token, REFRESH_TOKEN_TYPE)
