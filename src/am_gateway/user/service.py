"""Profile identity service: register, login, refresh.

The auction core only reads profiles; this is the one place they are written.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.am_common.errors import (
    AccountDisabledError,
    EmailExistsError,
    InvalidCredentialsError,
)
from src.am_gateway.auth.jwt_handler import (
    create_access_token,
    create_refresh_token,
    decode_token,
)
from src.am_gateway.auth.password import hash_password, verify_password
from src.am_gateway.user.db_models import ProfileModel


def _normalize_email(email: str) -> str:
    return email.strip().lower()


class ProfileService:
    """Stateless; one instance per router."""

    async def register(
        self,
        email: str,
        password: str,
        full_name: str | None,
        db: AsyncSession,
    ) -> ProfileModel:
        """Insert a profile. Caller owns the transaction (``async with db.begin()``)."""
        email = _normalize_email(email)
        result = await db.execute(
            select(ProfileModel).where(func.lower(ProfileModel.email) == email)
        )
        if result.scalar_one_or_none() is not None:
            raise EmailExistsError()

        profile = ProfileModel(
            email=email,
            full_name=full_name,
            password_hash=hash_password(password),
            is_active=True,
        )
        db.add(profile)
        await db.flush()
        await db.refresh(profile)
        return profile

    async def login(
        self,
        email: str,
        password: str,
        db: AsyncSession,
    ) -> tuple[ProfileModel, str, str]:
        """Return (profile, access_token, refresh_token).

        Unknown email and wrong password raise the same InvalidCredentialsError.
        """
        result = await db.execute(
            select(ProfileModel).where(func.lower(ProfileModel.email) == _normalize_email(email))
        )
        profile = result.scalar_one_or_none()

        if profile is None or not verify_password(password, profile.password_hash):
            raise InvalidCredentialsError()
        if not profile.is_active:
            raise AccountDisabledError()

        profile_id = str(profile.id)
        return profile, create_access_token(profile_id), create_refresh_token(profile_id)

    async def refresh(self, refresh_token: str) -> str:
        payload = decode_token(refresh_token, expected_type="refresh")
        return create_access_token(str(payload["sub"]))
