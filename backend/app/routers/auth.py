from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.errors import Unauthorized
from app.schemas.auth import LoginRequest, LoginResponse, MeResponse
from app.services.auth import authenticate_user, create_access_token, project_user
from app.middleware.auth import get_current_user
from app.models.user import User
from app.models.workspace import WorkspaceMember

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post("/login", response_model=LoginResponse)
async def login(request: LoginRequest, db: AsyncSession = Depends(get_db)):
    if not request.email or not request.password:
        raise Unauthorized("Invalid credentials")
    user = await authenticate_user(db, request.email, request.password)
    if not user:
        raise Unauthorized("Invalid credentials")
    return {"token": create_access_token(user), "user": project_user(user)}


@router.get("/me", response_model=MeResponse)
async def get_me(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(WorkspaceMember).where(WorkspaceMember.user_id == current_user.id)
    )
    me = project_user(current_user)
    me["memberships"] = [
        {"workspace_id": m.workspace_id, "role": m.role} for m in result.scalars().all()
    ]
    return me
