import logging
from datetime import datetime, timedelta
from typing import Optional
from jose import jwt, JWTError
from app.core.config import settings
from app.core.errors import Unauthorized

logger = logging.getLogger(__name__)


class AuthService:
    """Issues app session tokens and verifies incoming bearer tokens.

    Two token kinds are accepted: tokens this app issued (signed with
    SECRET_KEY) and Shopify App Bridge session tokens (signed with the app's
    Shopify API secret, audience = API key).
    """

    def create_access_token(self, data: dict, expires_delta: Optional[timedelta] = None) -> str:
        to_encode = data.copy()
        if expires_delta:
            expire = datetime.utcnow() + expires_delta
        else:
            expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    def decode_token(self, token: str) -> dict:
        token = (token or "").strip()
        if not token:
            raise Unauthorized("Not authenticated")

        try:
            return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        except JWTError:
            pass

        if settings.SHOPIFY_API_SECRET:
            try:
                return jwt.decode(
                    token,
                    settings.SHOPIFY_API_SECRET,
                    algorithms=["HS256"],
                    audience=settings.SHOPIFY_API_KEY or None,
                )
            except JWTError as exc:
                logger.info("Rejected Shopify session token: %s", exc)

        raise Unauthorized()

    def subject_for(self, token: str) -> str:
        claims = self.decode_token(token)
        subject = claims.get("sub")
        if not subject:
            raise Unauthorized("Invalid token payload")
        return str(subject)
