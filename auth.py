from datetime import datetime, timezone, timedelta
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext
from pydantic import BaseModel

from config import get_settings
from logger import get_logger
from schemas import ROLES

log = get_logger(__name__)

settings = get_settings()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)
# Only used to pull the bearer token off the Authorization header
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/users/login")


class AuthError(Exception):
    pass


class CurrentUser(BaseModel):
    id: str
    role: str


# ------------------------- Passwords -------------------------

def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


# ------------------------- Tokens -------------------------

def create_access_token(user_id: str, role: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.JWT_EXPIRES_MINUTES))
    to_encode = {"sub": str(user_id), "role": role, "exp": expire}
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> CurrentUser:
    """Verify signature and expiry, then return the identity the token carries."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        raise AuthError(str(e))
    user_id = payload.get("sub")
    role = payload.get("role")
    if not user_id or role not in ROLES:
        raise AuthError("Token payload is missing subject or role")
    return CurrentUser(id=user_id, role=role)


# ------------------------- Dependencies -------------------------

def get_current_user(token: str = Depends(oauth2_scheme)) -> CurrentUser:
    try:
        return decode_access_token(token)
    except AuthError as e:
        log.info("Token verification failed: %s", e)
        raise HTTPException(
            status_code=401,
            detail="Not authorized, invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_roles(*roles):
    def wrapper(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail=f"Access denied. Required role: {' or '.join(roles)}")
        return user
    return wrapper


farmer_only = require_roles("farmer")
vendor_only = require_roles("vendor")
ngo_only = require_roles("ngo")
admin_only = require_roles("admin")
