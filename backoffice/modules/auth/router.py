from fastapi import APIRouter

from backoffice.dependencies.dbDependencies import db_dependency
from backoffice.dependencies.authDependencies import auth_dependency
from backoffice.modules.auth.schemas import LoginRequest, TokenResponse, MeOut
from backoffice.modules.auth.service import AuthService

auth_router = APIRouter(prefix="/auth", tags=["Auth"])


@auth_router.post("/login", response_model=TokenResponse)
def login(credentials: LoginRequest, db: db_dependency):
    """
    Log in with email and password and get a bearer token.
    """
    return AuthService(db).login(credentials.email, credentials.password)


@auth_router.get("/me", response_model=MeOut)
def me(db: db_dependency, auth_context: auth_dependency):
    """Current principal with its selected company and permissions."""
    return AuthService(db).me(auth_context)
