# agrimarket/services/auth_service.py
from typing import Any, Dict

from sqlalchemy.orm import Session

from agrimarket.domain.schemas import UserCreate
from agrimarket.services.refresh_token_service import RefreshTokenService
from agrimarket.services.user_service import UserService
from agrimarket.utils.logging import get_logger

logger = get_logger(__name__)


class AuthService:
    """
    Session renewal around the refresh token. Credentials and access
    tokens are issued by the upstream auth gateway, the caller identity
    reaching this service is already verified.
    """

    def __init__(self, db: Session):
        self.user_service = UserService(db)
        self.refresh_tokens = RefreshTokenService(db)

    def register(self, payload: UserCreate) -> Dict[str, Any]:
        user = self.user_service.create_user(payload)
        token = self.refresh_tokens.create_or_rotate(user.id)
        logger.info(f"Registered user {user.id}")
        return {"user": user, "refresh_token": token["token"], "expiry_date": token["expiry_date"]}

    def login(self, user_id: int) -> Dict[str, Any]:
        user = self.user_service.get_user(user_id)
        token = self.refresh_tokens.create_or_rotate(user.id)
        return {"user": user, "refresh_token": token["token"], "expiry_date": token["expiry_date"]}

    def refresh(self, refresh_token: str) -> Dict[str, Any]:
        current = self.refresh_tokens.verify(refresh_token)
        user = self.user_service.get_user(current["user_id"])
        token = self.refresh_tokens.create_or_rotate(user.id)
        return {"user": user, "refresh_token": token["token"], "expiry_date": token["expiry_date"]}

    def logout(self, refresh_token: str) -> None:
        self.refresh_tokens.delete_by_token(refresh_token)
