"""
Authentication dependencies for FastAPI.
"""
from typing import List
from uuid import UUID

from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session, selectinload

from backoffice.database.database import get_db
from backoffice.modules.auth.models import User, Company, UserRole
from backoffice.modules.auth.schemas import AuthContext, ROLE_PERMISSIONS, ALL_ROLES, MANAGER_ROLES
from backoffice.modules.auth.utils import verify_token

# Security scheme
security = HTTPBearer(auto_error=False)


class AuthDependencies:
    """Reusable authentication dependencies."""

    @staticmethod
    def get_auth_context(
        request: Request,
        credentials: HTTPAuthorizationCredentials = Depends(security),
        db: Session = Depends(get_db)
    ) -> AuthContext:
        """
        Resolve the bearer token to a tenant-scoped principal.

        Non-master users are always bound to their own company. A master user
        may select any company through the X-Company-ID header.
        """
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

        if credentials is None:
            raise credentials_exception

        payload = verify_token(credentials.credentials)
        user_id = payload.get("sub")
        if user_id is None or payload.get("type") != "access":
            raise credentials_exception

        try:
            user_uuid = UUID(user_id)
        except ValueError:
            raise credentials_exception

        user = db.query(User).options(
            selectinload(User.company)
        ).filter(User.id == user_uuid).first()

        if user is None or not user.active:
            raise credentials_exception

        requested_tenant = getattr(request.state, "tenant_id", None)

        if user.role == UserRole.MASTER:
            tenant_id = requested_tenant or user.company_id
            if requested_tenant is not None:
                company = db.query(Company).filter(Company.id == requested_tenant).first()
                if company is None:
                    raise HTTPException(
                        status_code=status.HTTP_404_NOT_FOUND,
                        detail="Company not found"
                    )
        else:
            if user.company is None or not user.company.active:
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="User has no active company",
                    headers={"WWW-Authenticate": "Bearer"},
                )
            if requested_tenant is not None and requested_tenant != user.company_id:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="You do not have access to this company"
                )
            tenant_id = user.company_id

        return AuthContext(
            user_id=user.id,
            tenant_id=tenant_id,
            role=user.role,
            name=user.name,
            email=user.email,
            permissions=ROLE_PERMISSIONS.get(user.role, []),
        )

    @staticmethod
    def require_tenant():
        """Any authenticated user acting inside a selected company."""
        def tenant_checker(auth_context: AuthContext = Depends(AuthDependencies.get_auth_context)):
            if not auth_context.tenant_id:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="A company must be selected (X-Company-ID header)"
                )
            return auth_context
        return tenant_checker

    @staticmethod
    def require_role(allowed_roles: List[UserRole]):
        """
        Require one of the given roles inside a selected company.
        """
        def role_checker(auth_context: AuthContext = Depends(AuthDependencies.require_tenant())):
            if auth_context.role not in allowed_roles:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"One of these roles is required: {', '.join(r.value for r in allowed_roles)}"
                )
            return auth_context
        return role_checker

    @staticmethod
    def require_permission(action: str):
        """Require a permission (see ROLE_PERMISSIONS) inside a selected company."""
        def permission_checker(auth_context: AuthContext = Depends(AuthDependencies.require_tenant())):
            if not auth_context.has_permission(action):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Permission denied: {action}"
                )
            return auth_context
        return permission_checker

    @staticmethod
    def require_manager():
        """Master or administrator."""
        return AuthDependencies.require_role(MANAGER_ROLES)

    @staticmethod
    def require_any_role():
        """Any role with a selected company."""
        return AuthDependencies.require_role(ALL_ROLES)


# Dependency instances
get_auth_context = AuthDependencies.get_auth_context
require_manager = AuthDependencies.require_manager
require_any_role = AuthDependencies.require_any_role
