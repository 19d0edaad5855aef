import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import Depends
from fastapi.security import APIKeyHeader
from jose import JWTError, jwt
from passlib.context import CryptContext

import config
import database
from errors import ForbiddenError, UnauthorizedError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=config.BCRYPT_ROUNDS
)

# Accepts "Bearer <token>" as well as a bare token in the Authorization header
authorization_header = APIKeyHeader(name="Authorization", auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(
    user_id: str, is_course_maker: bool, expires_delta: Optional[timedelta] = None
) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {
        "sub": user_id,
        "isCourseMaker": bool(is_course_maker),
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(to_encode, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    return jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])


def _extract_token(header_value: Optional[str]) -> str:
    if not header_value:
        raise UnauthorizedError("Missing authorization token")
    scheme, _, credentials = header_value.strip().partition(" ")
    if credentials:
        if scheme.lower() != "bearer":
            raise UnauthorizedError("Unsupported authorization scheme")
        return credentials.strip()
    return scheme


async def get_current_user(authorization: Optional[str] = Depends(authorization_header)) -> Dict[str, Any]:
    token = _extract_token(authorization)
    try:
        payload = decode_access_token(token)
    except JWTError as exc:
        logger.info("Rejected token: %s", exc)
        raise UnauthorizedError("Token verification failed") from exc

    user_id = payload.get("sub")
    if not user_id or not ObjectId.is_valid(user_id):
        raise UnauthorizedError("Invalid token subject")

    user = await database.get_document(database.USERS, {"_id": ObjectId(user_id)})
    if user is None:
        raise UnauthorizedError("User no longer exists")
    return user


async def get_current_course_maker(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if not user.get("isCourseMaker"):
        raise ForbiddenError("User is not a course maker and cannot access this resource")
    return user
