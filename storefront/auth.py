import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

from dotenv import load_dotenv
from fastapi import Cookie, Depends, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from .errors import InvalidCredentials, NotFound, Unauthenticated
from .models import User
from .schemas import SessionUser

load_dotenv()

logger = logging.getLogger(__name__)

SECRET_KEY = os.getenv("SECRET_KEY", "3c9d1f6a8b2e4d7f0a5c9e1b3d6f8a2c4e7b9d1f3a5c8e0b2d4f6a9c1e3b5d7f")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 180))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 10))

SESSION_COOKIE_NAME = "token"
COOKIE_SECURE = os.getenv("ENVIRONMENT", "development").lower() == "production"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def create_access_token(user: User) -> str:
    to_encode = {
        "sub": str(user.id),
        "email": user.email,
        "name": user.name,
        "balance": str(user.balance),
    }
    expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> SessionUser:
    """Verify signature and expiry and return the embedded identity.

    Every failure collapses into ``Unauthenticated``; the reason is only logged.
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        return SessionUser(
            id=int(payload["sub"]),
            email=payload["email"],
            name=payload["name"],
            balance=payload["balance"],
        )
    except JWTError as e:
        logger.warning(f"Session token rejected: {e}")
    except (KeyError, TypeError, ValueError, PydanticValidationError) as e:
        logger.warning(f"Session token rejected, malformed claims: {e}")
    raise Unauthenticated()


def authenticate_user(db: Session, email: str, password: str) -> User:
    from .crud import get_user_by_email

    user = get_user_by_email(db, email=email)
    if user is None:
        raise NotFound("User not found. Please try again or register.")
    if not verify_password(password, user.hashed_password):
        raise InvalidCredentials("Incorrect password.")
    return user


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="lax",
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


def clear_session_cookie(response: Response) -> None:
    # The token stays valid until it expires; logout only drops it client-side.
    response.delete_cookie(key=SESSION_COOKIE_NAME, httponly=True, secure=COOKIE_SECURE, samesite="lax")


bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    token: Optional[str] = Cookie(None),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> SessionUser:
    """Session cookie first, ``Authorization: Bearer`` as a fallback."""
    raw = token or (credentials.credentials if credentials else None)
    if not raw:
        raise Unauthenticated()
    return decode_access_token(raw)
