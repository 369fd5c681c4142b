# agrimarket/api/deps.py
from functools import lru_cache

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from agrimarket.data.database import get_db
from agrimarket.domain.enums import UserRole
from agrimarket.domain.errors import ForbiddenError, NotFoundError
from agrimarket.repos.user_repo import UserRepo
from agrimarket.services.lock_service import LockService
from agrimarket.services.payment_gateway import PaymentGateway


@lru_cache
def get_lock_service() -> LockService:
    return LockService()


def get_payment_gateway() -> PaymentGateway:
    return PaymentGateway()


def require_admin(user_id: int = Query(...), db: Session = Depends(get_db)) -> int:
    # caller identity comes from the upstream auth gateway, only the role is checked here
    user = UserRepo(db).get_user(user_id)
    if not user:
        raise NotFoundError("User", "id", user_id)
    if user.role != UserRole.ADMIN.value:
        raise ForbiddenError("Admin role required")
    return user.id
