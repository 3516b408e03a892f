"""
Token-gated onboarding records.

Invitation: ISSUED (accepted_at is NULL) -> ACCEPTED (terminal).
ClientIntake: OPEN -> SUBMITTED (terminal).
Both tokens are single-use; consumption is a conditional UPDATE in the
services, never a read-then-write.
"""

from sqlalchemy import Column, String, DateTime, ForeignKey
from app.database import Base, JSONType
from app.services.tokens import generate_id, utcnow

INVITATION_ROLES = ("ADMIN", "USER", "MEMBER")
INTAKE_OPEN = "OPEN"
INTAKE_SUBMITTED = "SUBMITTED"


class Invitation(Base):
    __tablename__ = "invitations"

    id = Column(String(64), primary_key=True, default=lambda: generate_id("invite"))
    email = Column(String(255), nullable=False, index=True)
    token = Column(String(128), unique=True, nullable=False, index=True)
    role = Column(String(20), nullable=False)
    workspace_id = Column(String(64), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(String(64), ForeignKey("projects.id", ondelete="CASCADE"), nullable=True)
    invited_by = Column(String(64), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    expires_at = Column(DateTime, nullable=False)
    accepted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)


class ClientIntake(Base):
    __tablename__ = "client_intakes"

    id = Column(String(64), primary_key=True, default=lambda: generate_id("intake"))
    workspace_id = Column(String(64), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(String(64), ForeignKey("clients.id", ondelete="SET NULL"), nullable=True)
    token = Column(String(128), unique=True, nullable=False, index=True)
    status = Column(String(20), nullable=False, default=INTAKE_OPEN)
    service_type = Column(String(200), nullable=True)
    company_name = Column(String(200), nullable=True)
    contact_name = Column(String(200), nullable=True)
    contact_role = Column(String(200), nullable=True)
    industry = Column(String(200), nullable=True)
    business_details = Column(JSONType, default=dict)
    service_responses = Column(JSONType, default=dict)
    uploaded_files = Column(JSONType, default=list)
    payload = Column(JSONType, default=dict)
    expires_at = Column(DateTime, nullable=False)
    submitted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
