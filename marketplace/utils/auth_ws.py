# marketplace/utils/auth_ws.py

from typing import Optional

from jose import JWTError

from marketplace.core.security import decode_access_token


def decode_user_id(token: Optional[str]) -> Optional[int]:
    if not token:
        return None
    try:
        payload = decode_access_token(token)
        sub = payload.get("sub")
        return int(sub) if sub is not None else None
    except (JWTError, ValueError):
        return None
