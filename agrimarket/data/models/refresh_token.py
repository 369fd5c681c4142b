from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from agrimarket.data.database import Base


class RefreshTokenModel(Base):
    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True)
    # one active token per user, rotation updates this row in place
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    token = Column(String(255), nullable=False, unique=True)
    expiry_date = Column(DateTime(timezone=True), nullable=False)
