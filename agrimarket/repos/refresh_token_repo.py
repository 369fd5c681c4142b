# agrimarket/repos/refresh_token_repo.py
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from agrimarket.data.models.refresh_token import RefreshTokenModel


class RefreshTokenRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_by_token(self, token: str) -> RefreshTokenModel | None:
        return self.db.execute(
            select(RefreshTokenModel)
            .where(RefreshTokenModel.token == token)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_by_user_id(self, user_id: int) -> RefreshTokenModel | None:
        return self.db.execute(
            select(RefreshTokenModel)
            .where(RefreshTokenModel.user_id == user_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def rotate_in_place(self, user_id: int, token: str, expiry_date: datetime) -> int:
        # rotation rewrites the existing row, never inserts a second one
        result = self.db.execute(
            update(RefreshTokenModel)
            .where(RefreshTokenModel.user_id == user_id)
            .values(token=token, expiry_date=expiry_date)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def add_token(self, token: RefreshTokenModel) -> RefreshTokenModel:
        self.db.add(token)
        self.db.flush()
        return token

    def delete_by_token(self, token: str) -> int:
        result = self.db.execute(
            delete(RefreshTokenModel)
            .where(RefreshTokenModel.token == token)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def delete_by_user_id(self, user_id: int) -> int:
        result = self.db.execute(
            delete(RefreshTokenModel)
            .where(RefreshTokenModel.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def delete_expired(self, now: datetime) -> int:
        result = self.db.execute(
            delete(RefreshTokenModel)
            .where(RefreshTokenModel.expiry_date < now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
