from datetime import datetime, timedelta
from typing import Optional

import jwt
from fastapi import Header, HTTPException, status

from hourbook.core.config import settings


ALGORITHM = "HS256"


def create_jwt(payload: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = payload.copy()
    if expires_delta is None:
        expires_delta = timedelta(hours=12)
    exp = datetime.utcnow() + expires_delta
    to_encode.update({"exp": exp})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def create_account_token(account_id: str, email: str | None = None, expires_delta: Optional[timedelta] = None) -> str:
    payload = {"sub": account_id}
    if email:
        payload["email"] = email
    return create_jwt(payload, expires_delta)


def decode_jwt(token: str) -> dict:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc


async def get_current_account(authorization: Optional[str] = Header(None)) -> dict:
    # Tokens are issued by the hosted auth provider; sub is the owning account id
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    token = authorization.split(" ", 1)[1]
    payload = decode_jwt(token)
    account_id = payload.get("sub")
    if not account_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")
    return {
        "id": str(account_id),
        "email": payload.get("email", ""),
    }
