"""
Invitations API.

Endpoints:
    GET    /api/invitations/lookup?token=   — Public lookup of a pending invite
    POST   /api/invitations/accept          — Public acceptance
    POST   /api/invitations/decline         — Public decline
    POST   /api/invitations                 — Issue an invite (workspace admin)
    GET    /api/invitations?workspace_id=   — List invites (workspace admin)
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.middleware.auth import get_current_user
from app.models.user import User
from app.schemas.onboarding import (
    InvitationAccept,
    InvitationAccepted,
    InvitationCreate,
    InvitationDecline,
    InvitationIssued,
    InvitationLookup,
    InvitationSummary,
)
from app.services import invitations as invitation_service
from app.services.auth import project_user
from app.services.notifier import Notifier, get_notifier

router = APIRouter(prefix="/api/invitations", tags=["Invitations"])


@router.get("/lookup", response_model=InvitationLookup)
async def lookup_invitation(
    token: str = Query(""),
    db: AsyncSession = Depends(get_db),
):
    return await invitation_service.lookup_invitation(db, token)


@router.post("/accept", response_model=InvitationAccepted)
async def accept_invitation(
    data: InvitationAccept,
    db: AsyncSession = Depends(get_db),
):
    user, token, workspace_id = await invitation_service.accept_invitation(
        db, data.token, data.password, data.name
    )
    return {"token": token, "user": project_user(user), "workspace_id": workspace_id}


@router.post("/decline")
async def decline_invitation(
    data: InvitationDecline,
    db: AsyncSession = Depends(get_db),
):
    await invitation_service.decline_invitation(db, data.token)
    return {"message": "Invitation declined"}


@router.post("", response_model=InvitationIssued, status_code=status.HTTP_201_CREATED)
async def issue_invitation(
    data: InvitationCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    return await invitation_service.issue_invitation(
        db,
        notifier,
        current_user,
        email=data.email,
        role=data.role,
        workspace_id=data.workspace_id,
        project_id=data.project_id,
    )


@router.get("", response_model=list[InvitationSummary])
async def list_invitations(
    workspace_id: str = Query(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await invitation_service.list_invitations(db, current_user, workspace_id)
