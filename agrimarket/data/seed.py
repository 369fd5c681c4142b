# agrimarket/data/seed.py
from decimal import Decimal

from agrimarket.data.database import Base, SessionLocal, engine
from agrimarket.data.models import ProductModel, UserModel


USERS = [
    {"name": "Admin", "email": "admin@agrimarket.local", "role": "ADMIN"},
    {"name": "Jane Wanjiku", "email": "jane@agrimarket.local", "role": "USER"},
    {"name": "Kamau Farm", "email": "kamau@agrimarket.local", "role": "FARMER"},
]

PRODUCTS = [
    {"name": "Sukuma Wiki (bunch)", "price": Decimal("30.00"), "stock": 200, "category": "Vegetables"},
    {"name": "Avocado (Hass, kg)", "price": Decimal("150.00"), "stock": 80, "category": "Fruits"},
    {"name": "Maize Flour (2kg)", "price": Decimal("180.00"), "stock": 120, "category": "Grains"},
    {"name": "Fresh Milk (1L)", "price": Decimal("60.00"), "stock": 50, "category": "Dairy"},
]


def seed():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        # not forcing: only seed if empty
        if db.query(ProductModel).first():
            return
        db.add_all(UserModel(**u) for u in USERS)
        db.add_all(ProductModel(**p) for p in PRODUCTS)
        db.commit()
    finally:
        db.close()


if __name__ == "__main__":
    seed()
