from fastapi import Depends, HTTPException, Request
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from datetime import datetime, timedelta, timezone
from typing import Optional

from rentcar.config import ALGORITHM, SECRET_KEY, ACCESS_TOKEN_EXPIRE_MINUTES
from rentcar.database.init import get_session
from rentcar.enums.user_role import UserRole
from rentcar.schemas.auth_schema import Actor

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/signin")


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def get_db(request: Request):
    yield from get_session(request.app.state.session_factory)


def get_services(request: Request):
    return request.app.state.services


def get_current_actor(token: str = Depends(oauth2_scheme)) -> Actor:
    """Resolve the caller from a bearer token carrying ``sub`` (user id) and ``role``."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        subject = payload.get("sub")
        if subject is None:
            raise HTTPException(status_code=401, detail="Invalid credentials")
        return Actor(id=int(subject), role=UserRole(payload.get("role", UserRole.CUSTOMER.value)))
    except (JWTError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid provided token")


def admin_required(actor: Actor = Depends(get_current_actor)) -> Actor:
    """Dependency to ensure the current actor is an admin"""
    if not actor.is_admin:
        raise HTTPException(status_code=403, detail="Only admins can access this endpoint")
    return actor
