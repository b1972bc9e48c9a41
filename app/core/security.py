# app/core/security.py
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings

# =========
# Passwords
# =========

# Doctor accounts are created by receptionists with an initial password.
_pwd_ctx = CryptContext(
    schemes=["bcrypt_sha256", "bcrypt"],
    default="bcrypt_sha256",
    deprecated="auto",
)


def hash_password(plain_password: str) -> str:
    """
    Hash a plain-text password using bcrypt.
    """
    if not isinstance(plain_password, str) or plain_password == "":
        raise ValueError("Password must be a non-empty string")
    return _pwd_ctx.hash(plain_password)


# =====
# JWTs
# =====

class TokenType(str, Enum):
    ACCESS = "access"


class Role(str, Enum):
    PATIENT = "patient"
    RECEPTIONIST = "receptionist"
    DOCTOR = "doctor"
    ADMIN = "admin"


STAFF_ROLES = frozenset({Role.RECEPTIONIST.value, Role.DOCTOR.value, Role.ADMIN.value})

ALGORITHM = "HS256"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_access_token(
    *,
    subject: str,                # patient / staff id (UUID as str)
    role: str,
    expires_minutes: Optional[int] = None,
    extra_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Create a Bearer access token in the format issued by the identity service.
    Used by tests and local tooling; this service never logs anyone in.
    """
    exp_minutes = expires_minutes or settings.ACCESS_EXPIRES_MIN
    to_encode: Dict[str, Any] = {
        "sub": subject,
        "role": role,
        "type": TokenType.ACCESS.value,
        "iat": int(_utcnow().timestamp()),
        "exp": int((_utcnow() + timedelta(minutes=exp_minutes)).timestamp()),
        "jti": str(uuid.uuid4()),
    }
    if extra_claims:
        to_encode.update(extra_claims)

    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=ALGORITHM)


class InvalidTokenError(Exception):
    """Raised when a token is missing/invalid/expired or claims are malformed."""


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a JWT. Raises InvalidTokenError on failure.
    """
    if not token:
        raise InvalidTokenError("missing_token")
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM])
    except JWTError as exc:
        # JWTError covers expired signature, invalid signature, bad format, etc.
        raise InvalidTokenError("invalid_token") from exc

    if "sub" not in payload or "type" not in payload or "role" not in payload:
        raise InvalidTokenError("invalid_claims")
    if payload["role"] not in {r.value for r in Role}:
        raise InvalidTokenError("unknown_role")

    return payload


def is_access_token(payload: Dict[str, Any]) -> bool:
    return payload.get("type") == TokenType.ACCESS.value


# ======
# Actors
# ======

class ActorType(str, Enum):
    PATIENT = "PATIENT"
    STAFF = "STAFF"


@dataclass(frozen=True)
class Actor:
    """Who is calling: the token subject and role."""

    id: uuid.UUID
    role: str

    @property
    def kind(self) -> ActorType:
        return ActorType.STAFF if self.role in STAFF_ROLES else ActorType.PATIENT

    @property
    def is_staff(self) -> bool:
        return self.kind is ActorType.STAFF
