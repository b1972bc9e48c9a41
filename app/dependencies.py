# app/dependencies.py
from __future__ import annotations

import uuid
from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, system_clock
from app.core.config import settings
from app.core.security import Actor, InvalidTokenError, decode_token, is_access_token
from app.db.sql import get_session
from app.modules.appointments.service import AppointmentScheduler
from app.modules.appointments.validators import BookingRules
from app.modules.notifications import LoggingNotifier, Notifier

# Tokens come from the identity service; tokenUrl only feeds the OpenAPI docs.
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_PREFIX}/auth/token"
)

_notifier = LoggingNotifier()


async def get_current_actor(token: str = Depends(oauth2_scheme)) -> Actor:
    try:
        payload = decode_token(token)
    except InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid_token",
        )

    if not is_access_token(payload):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid_token_type",
        )

    try:
        actor_id = uuid.UUID(str(payload["sub"]))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid_subject",
        )
    return Actor(id=actor_id, role=payload["role"])


def require_roles(*roles: str):
    """
    Role guard factory. Example: Depends(require_roles("receptionist", "admin"))
    """
    async def _guard(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="insufficient_role",
            )
        return actor

    return _guard


def get_clock() -> Clock:
    return system_clock


def get_notifier() -> Notifier:
    return _notifier


@lru_cache
def get_rules() -> BookingRules:
    return BookingRules.from_settings(settings)


def get_scheduler(
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    notifier: Notifier = Depends(get_notifier),
    rules: BookingRules = Depends(get_rules),
) -> AppointmentScheduler:
    return AppointmentScheduler(
        session,
        clock=clock,
        notifier=notifier,
        rules=rules,
        number_attempts=settings.APPOINTMENT_NUMBER_ATTEMPTS,
    )
