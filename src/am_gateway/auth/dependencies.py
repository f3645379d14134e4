"""FastAPI dependency resolving the Bearer token to a ProfileModel.

    @router.get("/me")
    async def me(profile: Annotated[ProfileModel, Depends(get_current_user)]):
        ...
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.am_common.database import get_db_session
from src.am_common.errors import AccountDisabledError, InvalidCredentialsError
from src.am_gateway.auth.jwt_handler import decode_token
from src.am_gateway.user.db_models import ProfileModel

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileModel:
    """Return the active profile named by the token's ``sub`` claim.

    401 for a missing, invalid or expired token or an unknown profile;
    403 (AccountDisabledError) for a disabled profile.
    """
    try:
        payload = decode_token(token, expected_type="access")
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    profile_id = payload.get("sub")
    if not profile_id:
        raise _CREDENTIALS_EXCEPTION

    result = await db.execute(select(ProfileModel).where(ProfileModel.id == profile_id))
    profile = result.scalar_one_or_none()
    if profile is None:
        raise _CREDENTIALS_EXCEPTION
    if not profile.is_active:
        raise AccountDisabledError()
    return profile
