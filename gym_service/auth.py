import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from gym_service import config
from gym_service.database import get_db
from gym_service.errors import AppError
from gym_service.models import User, UserRole, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: str
    role: UserRole
    organization_id: str


def _to_bcrypt_secret(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes
    return password.encode("utf-8")[:72]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_to_bcrypt_secret(password), bcrypt.gensalt(rounds=12)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(_to_bcrypt_secret(password), password_hash.encode("utf-8"))


def token_payload(user: User) -> dict:
    return {
        "userId": user.id,
        "email": user.email,
        "role": UserRole(user.role).value,
        "organizationId": user.organization_id,
    }


def create_tokens(payload: dict) -> dict:
    now = datetime.now(timezone.utc)
    access = jwt.encode(
        {**payload, "exp": now + timedelta(minutes=config.JWT_EXPIRES_MINUTES)},
        config.JWT_SECRET,
        algorithm=config.JWT_ALGORITHM,
    )
    refresh = jwt.encode(
        {**payload, "exp": now + timedelta(days=config.JWT_REFRESH_EXPIRES_DAYS)},
        config.JWT_REFRESH_SECRET,
        algorithm=config.JWT_ALGORITHM,
    )
    return {"accessToken": access, "refreshToken": refresh}


def decode_token(token: str, secret: str) -> dict:
    try:
        return jwt.decode(token, secret, algorithms=[config.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AppError("Token expired", 401, "TOKEN_EXPIRED")
    except jwt.InvalidTokenError:
        raise AppError("Invalid token", 401, "INVALID_TOKEN")


def authenticate(db: Session, email: str, password: str) -> User:
    user = db.query(User).filter(User.email == email).first()
    if not user or not user.is_active or not verify_password(password, user.password_hash):
        raise AppError("Invalid credentials", 401, "INVALID_CREDENTIALS")
    user.last_login_at = utcnow()
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.email} logged in")
    return user


def refresh_tokens(db: Session, refresh_token: str) -> dict:
    decoded = decode_token(refresh_token, config.JWT_REFRESH_SECRET)
    user = db.query(User).filter(User.id == decoded.get("userId")).first()
    if not user or not user.is_active:
        raise AppError("User not found or inactive", 401, "UNAUTHORIZED")
    return create_tokens(token_payload(user))


def register_user(db: Session, current: "CurrentUser", data) -> User:
    if db.query(User).filter(User.email == data.email).first():
        raise AppError("User already exists", 400, "USER_EXISTS")

    user = User(
        organization_id=current.organization_id,
        branch_id=data.branch_id,
        email=data.email,
        password_hash=hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        role=data.role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.email} registered by {current.email} with role {user.role.value}")
    return user


def get_current_user(request: Request, db: Session = Depends(get_db)) -> CurrentUser:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise AppError("No token provided", 401, "UNAUTHORIZED")

    decoded = decode_token(auth_header[len("Bearer "):], config.JWT_SECRET)

    user = db.query(User).filter(User.id == decoded.get("userId")).first()
    if not user or not user.is_active:
        raise AppError("User not found or inactive", 401, "UNAUTHORIZED")

    return CurrentUser(
        id=user.id,
        email=user.email,
        role=UserRole(user.role),
        organization_id=user.organization_id,
    )


def require_roles(*roles: UserRole):
    def checker(current: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current.role not in roles:
            raise AppError("Not authorized", 403, "FORBIDDEN")
        return current
    return checker
