from typing import Optional
from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session
from app.core.config import settings
from app.core.errors import MerchantRequired, Unauthorized
from app.db.session import get_session
from app.models.customer import Customer
from app.models.merchant import Merchant
from app.services.auth import AuthService
from app.services.customer import CustomerService, MerchantService

router = APIRouter()

bearer_scheme = HTTPBearer(auto_error=False)


def get_auth_service() -> AuthService:
    return AuthService()

def get_current_subject(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    service: AuthService = Depends(get_auth_service),
) -> str:
    """User id from the embedded session token, falling back to the session cookie."""
    if credentials and credentials.credentials:
        return service.subject_for(credentials.credentials)

    cookie = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if cookie:
        return service.subject_for(cookie)

    raise Unauthorized("Not authenticated")

def get_current_customer(
    user_id: str = Depends(get_current_subject),
    session: Session = Depends(get_session),
) -> Customer:
    return CustomerService(session).get_or_create(user_id)

def get_current_merchant(
    user_id: str = Depends(get_current_subject),
    session: Session = Depends(get_session),
) -> Merchant:
    merchant = MerchantService(session).get_by_user_id(user_id)
    if not merchant:
        raise MerchantRequired()
    if not merchant.is_active:
        raise MerchantRequired("Merchant account is inactive")
    return merchant


@router.post("/session", status_code=status.HTTP_204_NO_CONTENT)
def create_session(
    response: Response,
    user_id: str = Depends(get_current_subject),
    service: AuthService = Depends(get_auth_service),
):
    """Exchange a verified bearer token for a cookie session (non-embedded use)."""
    token = service.create_access_token(data={"sub": user_id})
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        samesite="none",
        secure=True,
    )
    response.status_code = status.HTTP_204_NO_CONTENT
    return response

@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(response: Response):
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    response.status_code = status.HTTP_204_NO_CONTENT
    return response
