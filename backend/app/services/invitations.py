"""
Invitation state machine: ISSUED -> ACCEPTED.

Issue     admin-gated; persists the row, then emails the accept link.
Lookup    public; existence / acceptance / expiry checks.
Accept    public; re-runs the lookup checks, refuses to take over an account
          that already has a password, then claims the token with a
          conditional UPDATE. Only the request whose UPDATE touched the row
          goes on to create the user and memberships.
Decline   public; deletes an ISSUED invitation.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.errors import AccountExists, AlreadyConsumed, Conflict, Expired, NotFound, ValidationError
from app.models.onboarding import INVITATION_ROLES, Invitation
from app.models.project import Project, ProjectMember
from app.models.user import User
from app.models.workspace import Workspace, WorkspaceMember
from app.services.auth import create_access_token, get_user_by_email, hash_password, normalize_email
from app.services.notifier import Notifier
from app.services.rbac import require_workspace_admin
from app.services.tokens import expiry_after, generate_id, generate_token, is_expired, utcnow

logger = logging.getLogger(__name__)
settings = get_settings()


def build_invite_link(token: str) -> str:
    return f"{settings.APP_BASE_URL.rstrip('/')}/accept-invite?token={token}"


def global_role_for(invitation_role: str) -> str:
    return "ADMIN" if invitation_role == "ADMIN" else "USER"


def workspace_role_for(invitation_role: str) -> str:
    return "ADMIN" if invitation_role == "ADMIN" else "USER"


async def issue_invitation(
    db: AsyncSession,
    notifier: Notifier,
    inviter: User,
    email: str,
    role: str,
    workspace_id: str,
    project_id: Optional[str] = None,
) -> dict:
    email = normalize_email(email)
    if not email or not role or not workspace_id:
        raise ValidationError("email, role, and workspace_id are required")
    if "@" not in email:
        raise ValidationError("email is invalid")

    role = role.strip().upper()
    if role not in INVITATION_ROLES:
        raise ValidationError("Invalid role")
    if role == "MEMBER" and not project_id:
        raise ValidationError("project_id is required for member invites")

    await require_workspace_admin(db, inviter, workspace_id)

    result = await db.execute(select(Workspace.id).where(Workspace.id == workspace_id))
    if result.scalar_one_or_none() is None:
        raise NotFound("Workspace not found")

    if role == "MEMBER":
        result = await db.execute(
            select(Project.id).where(Project.id == project_id, Project.workspace_id == workspace_id)
        )
        if result.scalar_one_or_none() is None:
            raise ValidationError("project_id does not belong to this workspace")
    else:
        project_id = None

    token = generate_token()
    invitation = Invitation(
        id=generate_id("invite"),
        email=email,
        token=token,
        role=role,
        workspace_id=workspace_id,
        project_id=project_id,
        invited_by=inviter.id,
        expires_at=expiry_after(settings.INVITATION_TTL_DAYS),
    )
    db.add(invitation)
    await db.commit()
    logger.info(f"Invitation {invitation.id} issued for workspace {workspace_id} (role={role})")

    link = build_invite_link(token)
    delivery = await notifier.send_invitation_email(email, link)

    response = {
        "id": invitation.id,
        "message": "Invitation sent" if delivery.delivered else "Invitation created (email not sent)",
        "email_sent": delivery.delivered,
    }
    if delivery.error:
        response["email_error"] = delivery.error
    if not settings.is_production:
        response["invite_link"] = link
    return response


async def _load_pending_invitation(db: AsyncSession, token: str) -> Invitation:
    if not token:
        raise ValidationError("token is required")
    result = await db.execute(
        select(Invitation)
        .where(Invitation.token == token)
        .limit(1)
        .execution_options(populate_existing=True)
    )
    invitation = result.scalar_one_or_none()
    if invitation is None:
        raise NotFound("Invite not found")
    if invitation.accepted_at is not None:
        raise AlreadyConsumed("Invite already accepted")
    if is_expired(invitation.expires_at):
        raise Expired("Invite expired")
    return invitation


async def lookup_invitation(db: AsyncSession, token: str) -> dict:
    invitation = await _load_pending_invitation(db, token)
    existing = await get_user_by_email(db, invitation.email)
    return {
        "email": invitation.email,
        "role": invitation.role,
        "workspace_id": invitation.workspace_id,
        "project_id": invitation.project_id,
        "user_exists": existing is not None,
    }


async def _ensure_memberships(db: AsyncSession, invitation: Invitation, user_id: str) -> None:
    workspace_role = workspace_role_for(invitation.role)
    result = await db.execute(
        select(WorkspaceMember).where(
            WorkspaceMember.workspace_id == invitation.workspace_id,
            WorkspaceMember.user_id == user_id,
        )
    )
    membership = result.scalar_one_or_none()
    if membership is None:
        db.add(WorkspaceMember(
            id=generate_id("wm"),
            workspace_id=invitation.workspace_id,
            user_id=user_id,
            role=workspace_role,
            message="",
        ))
    elif workspace_role == "ADMIN" and membership.role != "ADMIN":
        membership.role = "ADMIN"

    if invitation.project_id:
        result = await db.execute(
            select(ProjectMember.id).where(
                ProjectMember.project_id == invitation.project_id,
                ProjectMember.user_id == user_id,
            )
        )
        if result.scalar_one_or_none() is None:
            db.add(ProjectMember(
                id=generate_id("pm"),
                project_id=invitation.project_id,
                user_id=user_id,
            ))


async def accept_invitation(
    db: AsyncSession,
    token: str,
    password: str,
    name: Optional[str] = None,
) -> tuple[User, str, str]:
    """Returns ``(user, session_token, workspace_id)``."""
    invitation = await _load_pending_invitation(db, token)
    if not password:
        raise ValidationError("password is required")

    existing = await get_user_by_email(db, invitation.email)
    if existing is not None and existing.password_hash:
        raise AccountExists()

    now = utcnow()
    claim = await db.execute(
        update(Invitation)
        .where(
            Invitation.id == invitation.id,
            Invitation.accepted_at.is_(None),
            Invitation.expires_at > now,
        )
        .values(accepted_at=now)
        .execution_options(synchronize_session=False)
    )
    if claim.rowcount != 1:
        await db.rollback()
        raise AlreadyConsumed("Invite already accepted")

    global_role = global_role_for(invitation.role)
    if existing is not None:
        user = existing
        user.password_hash = hash_password(password)
        if user.role != "ADMIN":
            user.role = global_role
        if name and name.strip():
            user.name = name.strip()
    else:
        user = User(
            id=generate_id("user"),
            name=(name or "").strip() or invitation.email.split("@")[0],
            email=invitation.email,
            password_hash=hash_password(password),
            role=global_role,
        )
        db.add(user)
        await db.flush()

    await _ensure_memberships(db, invitation, user.id)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning(f"Invitation {invitation.id} lost a concurrent acceptance race")
        raise Conflict("Invitation could not be accepted, please retry")

    await db.refresh(user)
    logger.info(f"Invitation {invitation.id} accepted by user {user.id}")
    return user, create_access_token(user), invitation.workspace_id


async def decline_invitation(db: AsyncSession, token: str) -> None:
    if not token:
        raise ValidationError("token is required")
    result = await db.execute(
        select(Invitation)
        .where(Invitation.token == token)
        .limit(1)
        .execution_options(populate_existing=True)
    )
    invitation = result.scalar_one_or_none()
    if invitation is None:
        raise NotFound("Invite not found")
    if invitation.accepted_at is not None:
        raise AlreadyConsumed("Invite already accepted")

    removed = await db.execute(
        delete(Invitation)
        .where(Invitation.id == invitation.id, Invitation.accepted_at.is_(None))
        .execution_options(synchronize_session=False)
    )
    if removed.rowcount != 1:
        await db.rollback()
        raise AlreadyConsumed("Invite already accepted")
    await db.commit()
    logger.info(f"Invitation {invitation.id} declined")


async def list_invitations(db: AsyncSession, user: User, workspace_id: str) -> list[Invitation]:
    await require_workspace_admin(db, user, workspace_id)
    result = await db.execute(
        select(Invitation)
        .where(Invitation.workspace_id == workspace_id)
        .order_by(Invitation.created_at.desc())
    )
    return list(result.scalars().all())
