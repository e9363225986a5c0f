from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer

from wasteflow.core.config import settings

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/users/login", auto_error=False)


def create_token(driver_id: str, minutes: Optional[int] = None, role: str = "driver") -> str:
    payload: Dict[str, Any] = {
        "sub": driver_id,
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=minutes or settings.access_ttl_min),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_alg)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_alg])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


async def get_current_claims(token: Optional[str] = Depends(oauth2_scheme)) -> dict:
    if not token:
        raise HTTPException(status_code=401, detail="Missing or invalid token")
    return decode_token(token)


async def get_current_driver(claims: dict = Depends(get_current_claims)) -> str:
    return claims["sub"]
