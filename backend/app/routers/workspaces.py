"""
Workspaces API — tenant management and the composed workspace view.

Endpoints:
    GET    /api/workspaces                  — Workspaces visible to the caller
    POST   /api/workspaces                  — Create a workspace (global admin)
    GET    /api/workspaces/{id}             — Composed WorkspaceView
    PATCH  /api/workspaces/{id}             — Update a workspace (workspace admin)
    POST   /api/workspaces/{id}/members     — Add a member (workspace admin)
"""

from __future__ import annotations

import logging
import re

from fastapi import APIRouter, Depends, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.errors import Conflict, NotFound, ValidationError
from app.middleware.auth import get_current_user, require_global_admin
from app.models.user import User
from app.models.workspace import Workspace, WorkspaceMember
from app.schemas.workspace import (
    WorkspaceCreate,
    WorkspaceMemberAdd,
    WorkspaceSummary,
    WorkspaceUpdate,
    WorkspaceView,
)
from app.services.rbac import require_workspace_admin, require_workspace_read
from app.services.tokens import generate_id
from app.services.workspace_view import compose_workspace

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/workspaces", tags=["Workspaces"])


# =============================================================================
# Helpers
# =============================================================================

def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", (value or "").strip().lower()).strip("-")


async def _unique_slug(db: AsyncSession, raw_slug: str) -> str:
    base = slugify(raw_slug)
    if not base:
        raise ValidationError("slug must include letters or numbers")
    candidate = base
    counter = 1
    while True:
        result = await db.execute(select(Workspace.id).where(Workspace.slug == candidate).limit(1))
        if result.scalar_one_or_none() is None:
            return candidate
        counter += 1
        candidate = f"{base}-{counter}"


def _summary(ws: Workspace, member_count: int) -> dict:
    return {
        "id": ws.id,
        "name": ws.name,
        "slug": ws.slug,
        "description": ws.description,
        "owner_id": ws.owner_id,
        "image_url": ws.image_url,
        "settings": ws.settings,
        "created_at": ws.created_at,
        "updated_at": ws.updated_at,
        "member_count": member_count,
    }


# =============================================================================
# Endpoints
# =============================================================================

@router.get("", response_model=list[WorkspaceSummary])
async def list_workspaces(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Global admins see every workspace, everybody else their memberships."""
    query = select(Workspace)
    if not current_user.is_global_admin:
        query = query.join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id).where(
            WorkspaceMember.user_id == current_user.id
        )
    result = await db.execute(query.order_by(Workspace.created_at))
    workspaces = list(result.scalars().unique().all())
    if not workspaces:
        return []

    counts_result = await db.execute(
        select(WorkspaceMember.workspace_id, func.count(WorkspaceMember.id))
        .where(WorkspaceMember.workspace_id.in_([ws.id for ws in workspaces]))
        .group_by(WorkspaceMember.workspace_id)
    )
    counts = dict(counts_result.all())
    return [_summary(ws, counts.get(ws.id, 0)) for ws in workspaces]


@router.post("", response_model=WorkspaceView, status_code=status.HTTP_201_CREATED)
async def create_workspace(
    data: WorkspaceCreate,
    current_user: User = Depends(require_global_admin),
    db: AsyncSession = Depends(get_db),
):
    """Creates a workspace; the creator becomes owner with an ADMIN membership."""
    ws = Workspace(
        id=generate_id("ws"),
        name=data.name,
        slug=await _unique_slug(db, data.slug),
        description=data.description,
        settings=data.settings or {},
        owner_id=current_user.id,
    )
    db.add(ws)
    await db.flush()

    db.add(WorkspaceMember(
        id=generate_id("wm"),
        workspace_id=ws.id,
        user_id=current_user.id,
        role="ADMIN",
    ))
    await db.commit()
    logger.info(f"Workspace {ws.id} created by {current_user.id}")
    return await compose_workspace(db, ws.id)


@router.get("/{workspace_id}", response_model=WorkspaceView)
async def get_workspace(
    workspace_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_workspace_read(db, current_user, workspace_id)
    return await compose_workspace(db, workspace_id)


@router.patch("/{workspace_id}", response_model=WorkspaceView)
async def update_workspace(
    workspace_id: str,
    data: WorkspaceUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_workspace_admin(db, current_user, workspace_id)
    result = await db.execute(select(Workspace).where(Workspace.id == workspace_id))
    ws = result.scalar_one_or_none()
    if not ws:
        raise NotFound("Workspace not found")

    updates = data.model_dump(exclude_unset=True)
    raw_slug = updates.pop("slug", None)
    if raw_slug:
        new_slug = slugify(raw_slug)
        if new_slug != ws.slug:
            ws.slug = await _unique_slug(db, new_slug)
    for key, value in updates.items():
        # name is NOT NULL; null or empty leaves it unchanged, like slug above
        if key == "name" and not value:
            continue
        setattr(ws, key, value)

    await db.commit()
    return await compose_workspace(db, workspace_id)


@router.post("/{workspace_id}/members", response_model=WorkspaceView, status_code=status.HTTP_201_CREATED)
async def add_member(
    workspace_id: str,
    data: WorkspaceMemberAdd,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_workspace_admin(db, current_user, workspace_id)

    result = await db.execute(select(Workspace.id).where(Workspace.id == workspace_id))
    if result.scalar_one_or_none() is None:
        raise NotFound("Workspace not found")

    user_result = await db.execute(select(User.id).where(User.id == data.user_id))
    if user_result.scalar_one_or_none() is None:
        raise NotFound("User not found")

    db.add(WorkspaceMember(
        id=generate_id("wm"),
        workspace_id=workspace_id,
        user_id=data.user_id,
        role=data.role,
        message=data.message,
    ))
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("User is already a member of this workspace")
    return await compose_workspace(db, workspace_id)
