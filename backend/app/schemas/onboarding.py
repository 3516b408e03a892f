from pydantic import BaseModel
from typing import Optional, Dict, Any, List
from datetime import datetime
from app.schemas.auth import UserPublic


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------

class InvitationCreate(BaseModel):
    email: str
    role: str
    workspace_id: str
    project_id: Optional[str] = None


class InvitationIssued(BaseModel):
    id: str
    message: str
    email_sent: bool
    email_error: Optional[str] = None
    invite_link: Optional[str] = None


class InvitationLookup(BaseModel):
    email: str
    role: str
    workspace_id: str
    project_id: Optional[str] = None
    user_exists: bool


class InvitationAccept(BaseModel):
    token: str
    password: str
    name: Optional[str] = None


class InvitationAccepted(BaseModel):
    token: str
    user: UserPublic
    workspace_id: str


class InvitationDecline(BaseModel):
    token: str


class InvitationSummary(BaseModel):
    id: str
    email: str
    role: str
    workspace_id: str
    project_id: Optional[str] = None
    invited_by: Optional[str] = None
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# Client intakes
# ---------------------------------------------------------------------------

class IntakeCreate(BaseModel):
    workspace_id: str
    client_id: Optional[str] = None


class IntakePublicCreate(BaseModel):
    workspace_id: str


class IntakeCreated(BaseModel):
    id: str
    token: str
    link: str


class IntakeLookup(BaseModel):
    workspace_id: str
    workspace_name: Optional[str] = None
    client_id: Optional[str] = None
    client_name: Optional[str] = None


class IntakeSubmit(BaseModel):
    token: str
    payload: Optional[Dict[str, Any]] = None


class IntakeSubmitted(BaseModel):
    message: str
    client_id: str
    webhook_delivered: bool


class IntakeSummary(BaseModel):
    id: str
    workspace_id: str
    client_id: Optional[str] = None
    status: str
    service_type: Optional[str] = None
    company_name: Optional[str] = None
    contact_name: Optional[str] = None
    contact_role: Optional[str] = None
    industry: Optional[str] = None
    business_details: Optional[Dict[str, Any]] = None
    service_responses: Optional[Dict[str, Any]] = None
    uploaded_files: Optional[List[Any]] = None
    payload: Optional[Dict[str, Any]] = None
    expires_at: datetime
    submitted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
