from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.errors import Forbidden, Unauthorized
from app.services.auth import decode_token, get_user_by_id
from app.models.user import User

security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise Unauthorized()
    payload = decode_token(credentials.credentials)
    if not payload or payload.get("type") != "access":
        raise Unauthorized("Invalid or expired token")
    user_id = payload.get("sub")
    if not user_id:
        raise Unauthorized("Invalid token payload")
    user = await get_user_by_id(db, user_id)
    if not user:
        raise Unauthorized("User not found")
    return user


async def require_global_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_global_admin:
        raise Forbidden()
    return current_user
