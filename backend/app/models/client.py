from sqlalchemy import Column, String, DateTime, ForeignKey
from app.database import Base, JSONType
from app.services.tokens import generate_id, utcnow


class Client(Base):
    __tablename__ = "clients"

    id = Column(String(64), primary_key=True, default=lambda: generate_id("client"))
    workspace_id = Column(String(64), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    company = Column(String(200), nullable=True)
    contact_name = Column(String(200), nullable=True)
    contact_role = Column(String(200), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(100), nullable=True)
    website = Column(String(500), nullable=True)
    industry = Column(String(200), nullable=True)
    service_type = Column(String(200), nullable=True)
    portal_workspace_id = Column(String(64), ForeignKey("workspaces.id", ondelete="SET NULL"), nullable=True)
    business_details = Column(JSONType, default=dict)
    service_responses = Column(JSONType, default=dict)
    uploaded_files = Column(JSONType, default=list)
    status = Column(String(20), nullable=False, default="ACTIVE")
    details = Column(JSONType, default=dict)  # provenance of intake-created clients
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
