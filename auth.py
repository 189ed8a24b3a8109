import logging
import os
import secrets
from datetime import datetime, timedelta
from typing import Optional

from dotenv import load_dotenv
from fastapi import Header, HTTPException
from jose import JWTError, jwt
from passlib.context import CryptContext

load_dotenv()

logger = logging.getLogger(__name__)

# =====================
# Auth / Security Setup
# =====================
# Tokens signed with a per-process key stop validating on restart; set JWT_SECRET to keep them.
SECRET_KEY = os.getenv("JWT_SECRET") or secrets.token_urlsafe(32)
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 12))
ADMIN_SUBJECT = "admin"

# Use pbkdf2_sha256 to avoid external bcrypt dependency issues
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# Support providing a precomputed hash; otherwise hash ADMIN_PASSWORD once at startup.
# With neither set no password is accepted.
_admin_password = os.getenv("ADMIN_PASSWORD", "")
ADMIN_PASSWORD_HASH = os.getenv("ADMIN_PASSWORD_HASH") or (
    pwd_context.hash(_admin_password) if _admin_password else None
)
del _admin_password


def check_admin_password(password: str) -> bool:
    if not password or not ADMIN_PASSWORD_HASH:
        return False
    try:
        return pwd_context.verify(password, ADMIN_PASSWORD_HASH)
    except ValueError:
        logger.error("ADMIN_PASSWORD_HASH is not a valid passlib hash")
        return False


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def issue_admin_token() -> str:
    return create_access_token({"sub": ADMIN_SUBJECT, "role": "admin"})


def get_current_admin(authorization: Optional[str] = Header(None)):
    """FastAPI dependency guarding every mutating admin route."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")
    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    if payload.get("sub") != ADMIN_SUBJECT or payload.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Forbidden")
    return {"sub": payload["sub"], "role": payload["role"], "exp": payload.get("exp")}
