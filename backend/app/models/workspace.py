"""
Workspace — tenant boundary.

A workspace owns its members, projects, clients, invitations and intakes.
The owner always holds an ADMIN membership row.
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, Text, UniqueConstraint

from app.database import Base, JSONType
from app.services.tokens import generate_id, utcnow

WORKSPACE_ROLES = ("ADMIN", "USER")


class Workspace(Base):
    __tablename__ = "workspaces"

    id = Column(String(64), primary_key=True, default=lambda: generate_id("ws"))
    name = Column(String(200), nullable=False)
    slug = Column(String(200), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    settings = Column(JSONType, default=dict)
    owner_id = Column(String(64), ForeignKey("users.id"), nullable=False)
    image_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class WorkspaceMember(Base):
    __tablename__ = "workspace_members"
    __table_args__ = (UniqueConstraint("workspace_id", "user_id", name="uq_workspace_member"),)

    id = Column(String(64), primary_key=True, default=lambda: generate_id("wm"))
    workspace_id = Column(String(64), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False, default="USER")  # 'ADMIN' | 'USER'
    message = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
