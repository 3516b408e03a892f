"""
Client-intake state machine: OPEN -> SUBMITTED.

Submission consumes the token with a conditional UPDATE
(``status = 'OPEN' AND expires_at > now``) and branches only on the affected
row count, so two concurrent submissions cannot both succeed and the client
row is created at most once.

The sales-funnel webhook runs after the commit. Its failure is reported to
the caller; the intake stays SUBMITTED.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.errors import AlreadyConsumed, Expired, NotFound, UpstreamDeliveryFailure, ValidationError
from app.models.client import Client
from app.models.onboarding import INTAKE_OPEN, INTAKE_SUBMITTED, ClientIntake
from app.models.user import User
from app.models.workspace import Workspace
from app.services.notifier import Notifier
from app.services.rbac import require_workspace_admin
from app.services.tokens import expiry_after, generate_id, generate_token, is_expired, utcnow

logger = logging.getLogger(__name__)
settings = get_settings()

SALES_FUNNEL_FIELDS = ("name", "email", "business_model", "biggest_bottleneck")

# Free-form project brief fields copied verbatim into ``Client.details``
BRIEF_FIELDS = (
    "projectName", "goals", "budget", "timeline", "targetAudience",
    "brandGuidelines", "competitors", "successMetrics", "notes",
)


def build_intake_link(token: str) -> str:
    return f"{settings.ONBOARDING_PORTAL_URL.rstrip('/')}/intake?token={token}"


def _first(payload: dict, *keys: str) -> Any:
    for key in keys:
        value = payload.get(key)
        if value:
            return value
    return None


def sales_funnel_payload(payload: dict) -> Optional[dict]:
    """The four-field webhook body, or None when the payload is not a funnel lead."""
    if not all(isinstance(payload.get(field), str) for field in SALES_FUNNEL_FIELDS):
        return None
    return {field: payload[field] for field in SALES_FUNNEL_FIELDS}


def normalize_submission(payload: dict) -> dict:
    """Map the loosely-shaped intake form onto the intake/client columns."""
    service_responses = payload.get("service_responses") or {}
    if not isinstance(service_responses, dict):
        service_responses = {}
    return {
        "source": "PUBLIC" if payload.get("source") == "PUBLIC" else "INTAKE",
        "contact_name": _first(payload, "contact_name", "name", "clientName"),
        "contact_role": payload.get("contact_role") or None,
        "company_name": _first(payload, "company_name", "company"),
        "email": payload.get("email") or None,
        "phone": payload.get("phone") or None,
        "website": _first(payload, "company_website", "website") or service_responses.get("current_url") or None,
        "industry": payload.get("industry") or None,
        "service_type": _first(payload, "service_type", "business_model"),
        "business_details": payload.get("business_details") or {},
        "service_responses": service_responses,
        "uploaded_files": payload.get("uploaded_files") or [],
    }


def _client_details(intake_id: str, payload: dict, fields: dict) -> dict:
    details = {
        "source": fields["source"],
        "intake_id": intake_id,
        "service_type": fields["service_type"],
        "business_model": payload.get("business_model") or None,
        "biggest_bottleneck": payload.get("biggest_bottleneck") or None,
        "contact_role": fields["contact_role"],
        "business_details": payload.get("business_details") or None,
        "service_responses": payload.get("service_responses") or None,
        "uploaded_files": payload.get("uploaded_files") or None,
    }
    for key in BRIEF_FIELDS:
        details[key] = payload.get(key) or None
    return details


async def create_intake(db: AsyncSession, workspace_id: str, client_id: Optional[str] = None) -> dict:
    """Public variant: keyed only by the workspace id."""
    if not workspace_id:
        raise ValidationError("workspace_id is required")

    result = await db.execute(select(Workspace.id).where(Workspace.id == workspace_id))
    if result.scalar_one_or_none() is None:
        raise NotFound("Workspace not found")

    if client_id:
        result = await db.execute(
            select(Client.id).where(Client.id == client_id, Client.workspace_id == workspace_id)
        )
        if result.scalar_one_or_none() is None:
            raise NotFound("Client not found")

    token = generate_token()
    intake = ClientIntake(
        id=generate_id("intake"),
        workspace_id=workspace_id,
        client_id=client_id,
        token=token,
        status=INTAKE_OPEN,
        expires_at=expiry_after(settings.INTAKE_TTL_DAYS),
    )
    db.add(intake)
    await db.commit()
    logger.info(f"Client intake {intake.id} opened for workspace {workspace_id}")
    return {"id": intake.id, "token": token, "link": build_intake_link(token)}


async def create_intake_as_admin(
    db: AsyncSession, user: User, workspace_id: str, client_id: Optional[str] = None
) -> dict:
    if not workspace_id:
        raise ValidationError("workspace_id is required")
    await require_workspace_admin(db, user, workspace_id)
    return await create_intake(db, workspace_id, client_id)


async def _load_open_intake(db: AsyncSession, token: str) -> ClientIntake:
    if not token:
        raise ValidationError("token is required")
    result = await db.execute(
        select(ClientIntake)
        .where(ClientIntake.token == token)
        .limit(1)
        .execution_options(populate_existing=True)
    )
    intake = result.scalar_one_or_none()
    if intake is None:
        raise NotFound("Intake not found")
    if intake.status != INTAKE_OPEN:
        raise AlreadyConsumed("Intake already submitted")
    if is_expired(intake.expires_at):
        raise Expired("Intake expired")
    return intake


async def lookup_intake(db: AsyncSession, token: str) -> dict:
    """Display context only; the raw row never leaves the service."""
    intake = await _load_open_intake(db, token)

    result = await db.execute(select(Workspace.name).where(Workspace.id == intake.workspace_id))
    workspace_name = result.scalar_one_or_none()

    client_name = None
    if intake.client_id:
        result = await db.execute(select(Client.name).where(Client.id == intake.client_id))
        client_name = result.scalar_one_or_none()

    return {
        "workspace_id": intake.workspace_id,
        "workspace_name": workspace_name,
        "client_id": intake.client_id,
        "client_name": client_name,
    }


async def submit_intake(
    db: AsyncSession,
    notifier: Notifier,
    token: str,
    payload: Optional[dict],
) -> dict:
    intake = await _load_open_intake(db, token)
    payload = payload or {}
    if not isinstance(payload, dict):
        raise ValidationError("payload must be an object")

    fields = normalize_submission(payload)
    client_id = intake.client_id

    if client_id is None:
        client_id = generate_id("client")
        db.add(Client(
            id=client_id,
            workspace_id=intake.workspace_id,
            name=fields["contact_name"] or fields["company_name"] or "Client",
            company=fields["company_name"],
            contact_name=fields["contact_name"],
            contact_role=fields["contact_role"],
            email=fields["email"],
            phone=fields["phone"],
            website=fields["website"],
            industry=fields["industry"],
            service_type=fields["service_type"],
            business_details=fields["business_details"],
            service_responses=fields["service_responses"],
            uploaded_files=fields["uploaded_files"],
            details=_client_details(intake.id, payload, fields),
        ))
        # the intake row references the client, insert it first
        await db.flush()

    now = utcnow()
    claim = await db.execute(
        update(ClientIntake)
        .where(
            ClientIntake.id == intake.id,
            ClientIntake.status == INTAKE_OPEN,
            ClientIntake.expires_at > now,
        )
        .values(
            status=INTAKE_SUBMITTED,
            submitted_at=now,
            client_id=client_id,
            service_type=fields["service_type"],
            company_name=fields["company_name"],
            contact_name=fields["contact_name"],
            contact_role=fields["contact_role"],
            industry=fields["industry"],
            business_details=fields["business_details"],
            service_responses=fields["service_responses"],
            uploaded_files=fields["uploaded_files"],
            payload=payload,
        )
        .execution_options(synchronize_session=False)
    )
    if claim.rowcount != 1:
        # rolls back the client inserted above as well
        await db.rollback()
        raise AlreadyConsumed("Intake already submitted")

    await db.commit()
    logger.info(f"Client intake {intake.id} submitted (client={client_id})")

    webhook_delivered = False
    funnel = sales_funnel_payload(payload)
    if funnel is not None and notifier.webhook_url:
        try:
            await notifier.post_intake_webhook(funnel)
        except UpstreamDeliveryFailure as e:
            e.extra["client_id"] = client_id
            raise
        webhook_delivered = True

    return {"message": "Intake submitted", "client_id": client_id, "webhook_delivered": webhook_delivered}


async def list_intakes(db: AsyncSession, user: User, workspace_id: str) -> list[ClientIntake]:
    if not workspace_id:
        raise ValidationError("workspace_id is required")
    await require_workspace_admin(db, user, workspace_id)
    result = await db.execute(
        select(ClientIntake)
        .where(ClientIntake.workspace_id == workspace_id)
        .order_by(ClientIntake.created_at.desc())
    )
    return list(result.scalars().all())
