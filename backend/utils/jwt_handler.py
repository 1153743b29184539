import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from backend.config import Settings, get_settings

# Logger setup
logger = logging.getLogger("jwt_handler")
logging.basicConfig(level=logging.INFO)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/users/login")


# ---------- Passwords ----------
def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=12)).decode("utf-8")


def check_password(password: str, hashed: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))


# ---------- Token helpers ----------
def create_access_token(
    data: Dict[str, Any],
    settings: Settings,
    expires_delta: Optional[timedelta] = None,
) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_alg)


def verify_token(token: str, settings: Settings) -> Dict[str, str]:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_alg])
    except JWTError as e:
        logger.error(f"JWT error: {e}")
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user_id = payload.get("sub")
    username = payload.get("username")
    if not (user_id and username):
        raise HTTPException(status_code=401, detail="Invalid token payload")

    return {
        "_id": str(user_id),
        "user_id": str(user_id),
        "username": str(username),
        "email": str(payload.get("email") or ""),
    }


# Dependency for protected routes
def require_user(
    token: str = Depends(oauth2_scheme),
    settings: Settings = Depends(get_settings),
) -> Dict[str, str]:
    return verify_token(token, settings)
