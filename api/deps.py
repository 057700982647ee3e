"""
Request identity. Authentication happens upstream; the gateway forwards the user id in X-User-Id.
"""
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models import User
from services.errors import NotAuthenticatedError
from services.payments import PaymentGateway, get_payment_gateway
from services.policy import Capability, require


async def get_current_user(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    db: AsyncSession = Depends(get_db),
) -> User:
    if not x_user_id:
        raise NotAuthenticatedError("Authentication required")
    user = await db.get(User, x_user_id)
    if user is None or not user.is_active:
        raise NotAuthenticatedError("Unknown or inactive user")
    return user


def require_capability(capability: Capability):
    async def dependency(user: User = Depends(get_current_user)) -> User:
        require(user.role, capability)
        return user

    return dependency


def get_gateway() -> PaymentGateway:
    return get_payment_gateway()
