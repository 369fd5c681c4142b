# agrimarket/services/refresh_token_service.py
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agrimarket.data.models.refresh_token import RefreshTokenModel
from agrimarket.domain.errors import ConflictError, NotFoundError, TokenExpiredError
from agrimarket.repos.refresh_token_repo import RefreshTokenRepo
from agrimarket.repos.user_repo import UserRepo
from agrimarket.utils.logging import get_logger
from agrimarket.utils.retry import conflict_retry
from agrimarket.utils.settings import REFRESH_TOKEN_TTL_SECONDS

logger = get_logger(__name__)


def _as_utc(value: datetime) -> datetime:
    # sqlite hands back naive datetimes, everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class RefreshTokenService:
    """
    One refresh token per user, rotated in place.

    A unique-constraint conflict on insert (two first logins racing) is
    cleaned up and the whole rotation is retried, a bounded number of
    times, see utils.retry.conflict_retry.
    """

    def __init__(self, db: Session, ttl_seconds: int | None = None):
        self.repo = RefreshTokenRepo(db)
        self.user_repo = UserRepo(db)
        self.ttl = timedelta(seconds=ttl_seconds if ttl_seconds is not None else REFRESH_TOKEN_TTL_SECONDS)

    def create_or_rotate(self, user_id: int) -> Dict[str, Any]:
        if not self.user_repo.get_user(user_id):
            raise NotFoundError("User", "id", user_id)
        return self._rotate(user_id)

    @conflict_retry()
    def _rotate(self, user_id: int) -> Dict[str, Any]:
        token = str(uuid.uuid4())
        expiry_date = datetime.now(timezone.utc) + self.ttl

        try:
            if self.repo.rotate_in_place(user_id, token, expiry_date) == 0:
                self.repo.add_token(
                    RefreshTokenModel(user_id=user_id, token=token, expiry_date=expiry_date)
                )
                logger.debug(f"Created new refresh token for user {user_id}")
            else:
                logger.debug(f"Rotated refresh token for user {user_id}")
            self.repo.commit()
        except IntegrityError as e:
            self.repo.rollback()
            logger.warning(f"Duplicate refresh token for user {user_id}, cleaning up and retrying")
            self.repo.delete_by_user_id(user_id)
            self.repo.commit()
            raise ConflictError(f"Refresh token for user {user_id} was created concurrently") from e

        return {"user_id": user_id, "token": token, "expiry_date": expiry_date}

    def verify(self, token: str) -> Dict[str, Any]:
        row = self.repo.get_by_token(token)
        if not row:
            raise NotFoundError("RefreshToken", "token", "<redacted>")

        if _as_utc(row.expiry_date) < datetime.now(timezone.utc):
            self.repo.delete_by_token(token)
            self.repo.commit()
            logger.info(f"Expired refresh token of user {row.user_id} deleted")
            raise TokenExpiredError(token)

        return {"user_id": row.user_id, "token": row.token, "expiry_date": _as_utc(row.expiry_date)}

    def get_by_user_id(self, user_id: int) -> Dict[str, Any]:
        row = self.repo.get_by_user_id(user_id)
        if not row:
            raise NotFoundError("RefreshToken", "userId", user_id)
        return {"user_id": row.user_id, "token": row.token, "expiry_date": _as_utc(row.expiry_date)}

    def delete_by_token(self, token: str) -> None:
        if self.repo.delete_by_token(token):
            logger.debug("Deleted refresh token by value")
        self.repo.commit()

    def delete_by_user_id(self, user_id: int) -> None:
        if self.repo.delete_by_user_id(user_id):
            logger.debug(f"Deleted refresh token for user {user_id}")
        self.repo.commit()

    def purge_expired(self) -> int:
        removed = self.repo.delete_expired(datetime.now(timezone.utc))
        self.repo.commit()
        return removed
