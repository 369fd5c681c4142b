# agrimarket/repos/payment_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from agrimarket.data.models.payment import PaymentModel


class PaymentRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_by_order(self, order_id: str, for_update: bool = False) -> PaymentModel | None:
        stmt = (
            select(PaymentModel)
            .where(PaymentModel.order_id == order_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def get_by_transaction_id(self, transaction_id: str) -> PaymentModel | None:
        return self.db.execute(
            select(PaymentModel)
            .where(PaymentModel.transaction_id == transaction_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_by_checkout_request_id(self, checkout_request_id: str, for_update: bool = False) -> PaymentModel | None:
        stmt = (
            select(PaymentModel)
            .where(PaymentModel.checkout_request_id == checkout_request_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def add_payment(self, payment: PaymentModel) -> PaymentModel:
        self.db.add(payment)
        self.db.flush()
        return payment

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
