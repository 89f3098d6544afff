from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError
from sqlalchemy.orm import Session

from marketplace.core.db import get_db
from marketplace.core.security import decode_access_token
from marketplace.models.profile import Profile, User

bearer = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _user_from_token(token: str, db: Session) -> User:
    try:
        payload = decode_access_token(token)
        sub = payload.get("sub")
        if not sub:
            raise JWTError("missing sub")
        user_id = int(sub)
    except ExpiredSignatureError:
        raise _unauthorized("token_expired")
    except (JWTError, ValueError):
        raise _unauthorized("invalid_token")

    user = db.get(User, user_id)
    if not user:
        raise _unauthorized("user_not_found")
    if user.profile is not None and user.profile.banned:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="user_banned")
    return user


def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db),
) -> User:
    """JWT 토큰 인증 후 현재 사용자 객체 반환"""
    if not creds or (creds.scheme or "").lower() != "bearer":
        raise _unauthorized("invalid_token")
    return _user_from_token(creds.credentials, db)


def get_current_user_optional(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """
    Authorization 헤더가 없으면 None 반환.
    헤더가 있지만 invalid/expired 하면 401.
    """
    if creds is None or (creds.scheme or "").lower() != "bearer":
        return None
    return _user_from_token(creds.credentials, db)


def require_admin(me: User = Depends(get_current_user)) -> User:
    profile: Optional[Profile] = me.profile
    if profile is None or not profile.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="admin_only")
    return me
