"""
Authorization resolver.

Precedence rule, applied everywhere:
    1. global role ADMIN overrides everything;
    2. otherwise the workspace membership role (ADMIN administers, any row reads);
    3. otherwise an explicit project membership grants read access to that
       project only.

Every function here is a pure query over current state. Results must not be
cached across requests.
"""

from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.errors import Forbidden
from app.models.user import User
from app.models.workspace import WorkspaceMember
from app.models.project import Project, ProjectMember


async def get_workspace_member(db: AsyncSession, user_id: str, workspace_id: str) -> Optional[WorkspaceMember]:
    if not user_id:
        return None
    result = await db.execute(
        select(WorkspaceMember)
        .where(
            WorkspaceMember.workspace_id == workspace_id,
            WorkspaceMember.user_id == user_id,
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def is_workspace_admin(db: AsyncSession, user: User, workspace_id: str) -> bool:
    if user is None:
        return False
    if user.is_global_admin:
        return True
    member = await get_workspace_member(db, user.id, workspace_id)
    return member is not None and member.role == "ADMIN"


async def can_read_workspace(db: AsyncSession, user: User, workspace_id: str) -> bool:
    if user is None:
        return False
    if user.is_global_admin:
        return True
    return await get_workspace_member(db, user.id, workspace_id) is not None


async def can_read_project(db: AsyncSession, user: User, project_id: str) -> bool:
    """Workspace-wide access united with explicit ProjectMember rows."""
    if user is None:
        return False
    if user.is_global_admin:
        return True
    result = await db.execute(select(Project.workspace_id).where(Project.id == project_id))
    workspace_id = result.scalar_one_or_none()
    if workspace_id is None:
        return False
    if await get_workspace_member(db, user.id, workspace_id) is not None:
        return True
    result = await db.execute(
        select(ProjectMember.id)
        .where(ProjectMember.project_id == project_id, ProjectMember.user_id == user.id)
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def visible_project_ids(db: AsyncSession, user: User, workspace_id: str) -> Optional[List[str]]:
    """None means every project of the workspace is visible."""
    if await can_read_workspace(db, user, workspace_id):
        return None
    result = await db.execute(
        select(ProjectMember.project_id)
        .join(Project, Project.id == ProjectMember.project_id)
        .where(Project.workspace_id == workspace_id, ProjectMember.user_id == user.id)
    )
    return list(set(row[0] for row in result.all()))


async def require_workspace_admin(db: AsyncSession, user: User, workspace_id: str) -> None:
    if not await is_workspace_admin(db, user, workspace_id):
        raise Forbidden()


async def require_workspace_read(db: AsyncSession, user: User, workspace_id: str) -> None:
    if not await can_read_workspace(db, user, workspace_id):
        raise Forbidden()


async def require_project_read(db: AsyncSession, user: User, project_id: str) -> None:
    if not await can_read_project(db, user, project_id):
        raise Forbidden()
