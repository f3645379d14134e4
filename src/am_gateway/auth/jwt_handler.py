"""JWT issue and verification for profile sessions.

HS256 with the shared JWT_SECRET. Access and refresh tokens differ only in
their ``type`` claim and lifetime; decode_token enforces the type so a
refresh token can never be presented as an access token.
"""

from datetime import UTC, datetime, timedelta
from typing import NoReturn

from jose import JWTError, jwt

from config.settings import settings
from src.am_common.errors import InvalidCredentialsError, InvalidRefreshTokenError

_ALGORITHM = settings.JWT_ALGORITHM


def _issue(profile_id: str, token_type: str, lifetime: timedelta) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": profile_id,
        "type": token_type,
        "iat": now,
        "exp": now + lifetime,
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def create_access_token(profile_id: str) -> str:
    return _issue(profile_id, "access", timedelta(minutes=settings.JWT_EXPIRE_MINUTES))


def create_refresh_token(profile_id: str) -> str:
    return _issue(profile_id, "refresh", timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS))


def decode_token(token: str, expected_type: str) -> dict[str, str]:
    """Decode ``token`` and check its ``type`` claim.

    Raises InvalidCredentialsError for a bad access token and
    InvalidRefreshTokenError for a bad refresh token.
    """
    try:
        payload: dict[str, str] = jwt.decode(
            token, settings.JWT_SECRET, algorithms=[_ALGORITHM]
        )
    except JWTError:
        _raise_auth_error(expected_type)

    if payload.get("type") != expected_type:
        _raise_auth_error(expected_type)
    return payload


def _raise_auth_error(expected_type: str) -> NoReturn:
    if expected_type == "access":
        raise InvalidCredentialsError()
    raise InvalidRefreshTokenError()
