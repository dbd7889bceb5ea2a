from sqlalchemy import Column, String, DateTime, Enum as SQLEnum, Uuid, text
from sqlalchemy.orm import relationship
import uuid
from app.db.base import Base
import enum


class UserRoleEnum(str, enum.Enum):
    """User role."""
    ADMIN = "ADMIN"
    USER = "USER"


class User(Base):
    """Login account. Members get a USER account when they are created."""
    __tablename__ = "user"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=True)
    phone = Column(String(20), nullable=True)
    password_hash = Column(String(255), nullable=True)  # NULL until a password is set
    role = Column(SQLEnum(UserRoleEnum, native_enum=False, values_callable=lambda obj: [e.value for e in obj]), default=UserRoleEnum.USER, nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    member = relationship("Member", back_populates="user", uselist=False)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRoleEnum.ADMIN
