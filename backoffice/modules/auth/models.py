from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import Column, String, Boolean, ForeignKey, Enum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from backoffice.database.database import Base
from backoffice.common.mixins import TimestampMixin


class UserRole(str, PyEnum):
    MASTER = "master"
    ADMINISTRATOR = "administrator"
    OPERATIONAL = "operational"


class Company(Base, TimestampMixin):
    __tablename__ = "companies"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(200), nullable=False)
    cnpj = Column(String(14), unique=True, nullable=True)
    active = Column(Boolean, default=True, nullable=False)

    users = relationship("User", back_populates="company")


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    # NULL only for master users that are not bound to a company
    company_id = Column(UUID(as_uuid=True), ForeignKey("companies.id"), nullable=True, index=True)
    name = Column(String(150), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    password = Column(String, nullable=False)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=UserRole.OPERATIONAL,
    )
    active = Column(Boolean, default=True, nullable=False)

    company = relationship("Company", back_populates="users")
