"""
Client intakes API.

Endpoints:
    POST   /api/client-intakes/public          — Open an intake for a workspace (public)
    GET    /api/client-intakes/lookup?token=   — Display context of an open intake (public)
    POST   /api/client-intakes/submit          — Submit an intake (public)
    POST   /api/client-intakes                 — Open an intake (workspace admin)
    GET    /api/client-intakes?workspace_id=   — List intakes for review (workspace admin)
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.middleware.auth import get_current_user
from app.models.user import User
from app.schemas.onboarding import (
    IntakeCreate,
    IntakeCreated,
    IntakeLookup,
    IntakePublicCreate,
    IntakeSubmit,
    IntakeSubmitted,
    IntakeSummary,
)
from app.services import client_intakes as intake_service
from app.services.notifier import Notifier, get_notifier

router = APIRouter(prefix="/api/client-intakes", tags=["Client intakes"])


@router.post("/public", response_model=IntakeCreated, status_code=status.HTTP_201_CREATED)
async def create_public_intake(
    data: IntakePublicCreate,
    db: AsyncSession = Depends(get_db),
):
    return await intake_service.create_intake(db, data.workspace_id)


@router.get("/lookup", response_model=IntakeLookup)
async def lookup_intake(
    token: str = Query(""),
    db: AsyncSession = Depends(get_db),
):
    return await intake_service.lookup_intake(db, token)


@router.post("/submit", response_model=IntakeSubmitted)
async def submit_intake(
    data: IntakeSubmit,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    return await intake_service.submit_intake(db, notifier, data.token, data.payload)


@router.post("", response_model=IntakeCreated, status_code=status.HTTP_201_CREATED)
async def create_intake(
    data: IntakeCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await intake_service.create_intake_as_admin(db, current_user, data.workspace_id, data.client_id)


@router.get("", response_model=list[IntakeSummary])
async def list_intakes(
    workspace_id: str = Query(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await intake_service.list_intakes(db, current_user, workspace_id)
