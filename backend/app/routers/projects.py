from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.errors import Forbidden, NotFound
from app.middleware.auth import get_current_user
from app.models.project import Project
from app.models.user import User
from app.schemas.workspace import ProjectView
from app.services.rbac import require_project_read, visible_project_ids
from app.services.workspace_view import compose_project, compose_workspace

router = APIRouter(prefix="/api/projects", tags=["Projects"])


@router.get("", response_model=list[ProjectView])
async def list_projects(
    workspace_id: str = Query(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Projects of a workspace the caller can see, including project-only memberships."""
    project_ids = await visible_project_ids(db, current_user, workspace_id)
    if project_ids is not None and not project_ids:
        raise Forbidden()
    view = await compose_workspace(db, workspace_id, project_ids=project_ids)
    return view["projects"]


@router.get("/{project_id}", response_model=ProjectView)
async def get_project(
    project_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Project.id).where(Project.id == project_id))
    if result.scalar_one_or_none() is None:
        raise NotFound("Project not found")
    await require_project_read(db, current_user, project_id)
    return await compose_project(db, project_id)
