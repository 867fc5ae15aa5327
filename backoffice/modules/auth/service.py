import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session, selectinload

from backoffice.core.config import settings
from backoffice.modules.auth.models import User, UserRole
from backoffice.modules.auth.schemas import AuthContext, TokenResponse, UserOut, MeOut
from backoffice.modules.auth.utils import verify_password, create_access_token

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def _user_out(self, user: User) -> UserOut:
        return UserOut(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            company_id=user.company_id,
            company_name=user.company.name if user.company else None,
            active=user.active,
        )

    def login(self, email: str, password: str) -> TokenResponse:
        user = self.db.query(User).options(
            selectinload(User.company)
        ).filter(User.email == email.lower()).first()

        if not user or not verify_password(password, user.password):
            logger.info(f"Failed login attempt for {email}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid credentials"
            )

        if not user.active:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Inactive account"
            )

        if user.role != UserRole.MASTER and (user.company is None or not user.company.active):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Company is inactive"
            )

        token_data = {
            "sub": str(user.id),
            "email": user.email,
            "role": user.role.value,
        }
        if user.company_id:
            token_data["company_id"] = str(user.company_id)

        access_token = create_access_token(token_data)
        logger.info(f"User {user.id} logged in")

        return TokenResponse(
            access_token=access_token,
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            user=self._user_out(user),
        )

    def me(self, auth: AuthContext) -> MeOut:
        user = self.db.query(User).options(
            selectinload(User.company)
        ).filter(User.id == auth.user_id).first()
        if not user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

        permissions = auth.permissions
        if auth.is_superuser:
            permissions = ["all"]

        return MeOut(user=self._user_out(user), tenant_id=auth.tenant_id, permissions=permissions)
