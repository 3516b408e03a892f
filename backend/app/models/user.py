from sqlalchemy import Column, String, DateTime
from app.database import Base
from app.services.tokens import generate_id, utcnow

GLOBAL_ROLES = ("USER", "ADMIN", "CLIENT")


class User(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True, default=lambda: generate_id("user"))
    name = Column(String(200), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    image = Column(String(500), nullable=True)
    password_hash = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default="USER")  # USER | ADMIN | CLIENT
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def is_global_admin(self) -> bool:
        return self.role == "ADMIN"
