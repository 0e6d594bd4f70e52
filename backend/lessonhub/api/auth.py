"""Auth API: login, logout, profile endpoints and the caller-identity dependencies."""
from __future__ import annotations
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel
from jose import JWTError, jwt

from lessonhub.core import config
from lessonhub.domain.lesson.models import Actor
from lessonhub.persistence.db import get_connection

router = APIRouter(prefix="/auth", tags=["auth"])

_bearer = HTTPBearer(auto_error=False)


# ------------------------------------------------------------------
# Password hashing (Direct bcrypt to avoid passlib compatibility issues)
# ------------------------------------------------------------------
def hash_password(password: str) -> str:
    pwd_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(pwd_bytes, salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            hashed_password.encode("utf-8")
        )
    except ValueError:
        return False


# ------------------------------------------------------------------
# Pydantic schemas
# ------------------------------------------------------------------
class LoginRequest(BaseModel):
    username: str
    password: str


class ProfileUpdateRequest(BaseModel):
    display_name: Optional[str] = None
    email: Optional[str] = None


# ------------------------------------------------------------------
# JWT helpers
# ------------------------------------------------------------------
def _role_of(user: dict) -> str:
    if user.get("is_admin"):
        return "admin"
    if user.get("teacher_status") == "approved":
        return "teacher"
    return "user"


def _create_token(user_id: str, username: str, role: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": user_id,
        "username": username,
        "role": role,
        "exp": expire,
    }
    return jwt.encode(payload, config.SECRET_KEY, algorithm=config.ALGORITHM)


def _decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}")


# ------------------------------------------------------------------
# DB helpers
# ------------------------------------------------------------------
def _get_user_by_username(username: str) -> Optional[dict]:
    conn = get_connection()
    row = conn.execute("SELECT * FROM users WHERE username = ?", (username,)).fetchone()
    conn.close()
    return dict(row) if row else None


def _get_user_by_id(user_id: str) -> Optional[dict]:
    conn = get_connection()
    row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    conn.close()
    return dict(row) if row else None


def create_user(
    username: str,
    password: str,
    is_admin: bool = False,
    teacher_status: Optional[str] = None,
    caps_publish: bool = False,
    display_name: Optional[str] = None,
    email: Optional[str] = None,
) -> str:
    """Insert a user row and return its id."""
    user_id = str(uuid.uuid4())
    conn = get_connection()
    conn.execute(
        """
        INSERT INTO users (id, username, password_hash, is_admin, teacher_status,
                           caps_publish, display_name, email, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            user_id,
            username,
            hash_password(password),
            1 if is_admin else 0,
            teacher_status,
            1 if caps_publish else 0,
            display_name,
            email,
            datetime.now(timezone.utc).isoformat(),
        ),
    )
    conn.commit()
    conn.close()
    return user_id


def _to_actor(user: dict) -> Actor:
    return Actor(
        uid=user["id"],
        is_admin=bool(user.get("is_admin")),
        teacher_status=user.get("teacher_status"),
        caps_publish=bool(user.get("caps_publish")),
        display_name=user.get("display_name") or user.get("username") or "",
        email=user.get("email") or "",
    )


def _serialize_user(user: dict) -> dict:
    return {
        "id": user["id"],
        "username": user["username"],
        "role": _role_of(user),
        "is_admin": bool(user.get("is_admin")),
        "teacher_status": user.get("teacher_status"),
        "caps_publish": bool(user.get("caps_publish")),
        "display_name": user.get("display_name"),
        "email": user.get("email"),
    }


# ------------------------------------------------------------------
# Dependency: get current user from Bearer token
# ------------------------------------------------------------------
def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer)) -> dict:
    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return _decode_token(credentials.credentials)


def optional_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer)) -> Optional[dict]:
    if not credentials:
        return None
    try:
        return _decode_token(credentials.credentials)
    except HTTPException:
        return None


def get_current_actor(current_user: dict = Depends(get_current_user)) -> Actor:
    """Caller identity with roles read fresh from the users table, not from the token."""
    user = _get_user_by_id(current_user["sub"])
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
    return _to_actor(user)


def optional_current_actor(current_user: Optional[dict] = Depends(optional_current_user)) -> Optional[Actor]:
    if not current_user:
        return None
    user = _get_user_by_id(current_user["sub"])
    return _to_actor(user) if user else None


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------
@router.post("/login")
def login(body: LoginRequest):
    user = _get_user_by_username(body.username)
    if not user or not verify_password(body.password, user["password_hash"]):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    token = _create_token(user["id"], user["username"], _role_of(user))
    return {"token": token, "user": _serialize_user(user)}


@router.post("/logout")
def logout(current_user: dict = Depends(get_current_user)):
    # Stateless JWT: just acknowledge. Client discards token.
    return {"detail": "Logged out successfully"}


@router.get("/profile")
def get_profile(current_user: dict = Depends(get_current_user)):
    user = _get_user_by_id(current_user["sub"])
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return _serialize_user(user)


@router.put("/profile")
def update_profile(body: ProfileUpdateRequest, current_user: dict = Depends(get_current_user)):
    # Name and email are snapshotted into `signed_by` on the next publish
    conn = get_connection()
    conn.execute(
        "UPDATE users SET display_name = ?, email = ? WHERE id = ?",
        (body.display_name, body.email, current_user["sub"]),
    )
    conn.commit()
    conn.close()
    return {"detail": "Profile updated"}
