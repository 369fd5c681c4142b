from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agrimarket.data.models.user import UserModel
from agrimarket.domain.errors import InvalidArgumentError, NotFoundError
from agrimarket.domain.schemas import UserCreate, UserRead
from agrimarket.repos.user_repo import UserRepo


class UserService:
    """Minimal user lookup/creation, profiles are managed elsewhere."""

    def __init__(self, db: Session):
        self.repo = UserRepo(db)

    def create_user(self, payload: UserCreate) -> UserRead:
        existing = self.repo.get_user_by_email(payload.email)
        if existing:
            raise InvalidArgumentError("Email address already in use")

        user = UserModel(name=payload.name, email=payload.email, role=payload.role.value)
        try:
            created = self.repo.create_user(user)
        except IntegrityError as e:
            self.repo.db.rollback()
            raise InvalidArgumentError("Email address already in use") from e
        return UserRead.model_validate(created)

    def get_user(self, user_id: int) -> UserRead:
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFoundError("User", "id", user_id)
        return UserRead.model_validate(user)
