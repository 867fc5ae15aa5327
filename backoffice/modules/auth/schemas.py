from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr

from backoffice.common.schemas import CamelModel
from backoffice.modules.auth.models import UserRole


# Actions a principal may perform, per role. Master is allowed everything.
ROLE_PERMISSIONS = {
    UserRole.ADMINISTRATOR: [
        "manage_company",
        "create_users",
        "delete_records",
        "edit_all",
        "create_entries",
        "view_company",
    ],
    UserRole.OPERATIONAL: [
        "create_entries",
        "edit_own",
        "view_company",
    ],
}

ALL_ROLES = [UserRole.MASTER, UserRole.ADMINISTRATOR, UserRole.OPERATIONAL]
MANAGER_ROLES = [UserRole.MASTER, UserRole.ADMINISTRATOR]


class LoginRequest(CamelModel):
    email: EmailStr
    password: str


class UserOut(CamelModel):
    id: UUID
    name: str
    email: str
    role: UserRole
    company_id: Optional[UUID] = None
    company_name: Optional[str] = None
    active: bool


class TokenResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserOut


class AuthContext(BaseModel):
    user_id: UUID
    tenant_id: Optional[UUID] = None
    role: UserRole
    name: str
    email: str
    permissions: List[str] = []

    @property
    def is_superuser(self) -> bool:
        return self.role == UserRole.MASTER

    def has_permission(self, action: str) -> bool:
        if self.is_superuser:
            return True
        return action in self.permissions

    def can_edit(self, owner_id: Optional[UUID]) -> bool:
        """edit_all covers every record; edit_own only the caller's records"""
        if self.has_permission("edit_all"):
            return True
        return self.has_permission("edit_own") and owner_id == self.user_id


class MeOut(CamelModel):
    user: UserOut
    tenant_id: Optional[UUID] = None
    permissions: List[str]
