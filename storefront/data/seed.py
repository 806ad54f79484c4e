# storefront/data/seed.py
from datetime import datetime, timezone, timedelta

from storefront.data.database import SessionLocal, init_db
from storefront.data.models import CouponModel, ProductModel, UserModel

PRODUCTS = [
    {"name": "Classic Tee", "price": 25, "stock": 100, "discount": 0, "category": "Apparel"},
    {"name": "Denim Jacket", "price": 100, "stock": 20, "discount": 0, "category": "Apparel"},
    {"name": "Canvas Tote", "price": 50, "stock": 40, "discount": 10, "category": "Accessories"},
    {"name": "Wool Beanie", "price": 18.5, "stock": 0, "discount": 0, "category": "Accessories"},
]


def seed():
    init_db()
    db = SessionLocal()
    try:
        # not forcing: only seed if empty
        if db.query(ProductModel).first():
            return

        admin = UserModel(id=1, name="Admin", email="admin@example.com", role="admin")
        db.add(admin)
        db.add(UserModel(id=2, name="Demo", email="demo@example.com", role="user"))
        for p in PRODUCTS:
            db.add(ProductModel(description=f"{p['name']} from the demo catalog", **p))

        now = datetime.now(timezone.utc)
        db.add(CouponModel(code="SAVE10", discount=10, expiry_date=now + timedelta(days=30), max_usage=100, created_by=1))
        db.add(CouponModel(code="DISCOUNT20", discount=20, expiry_date=now + timedelta(days=7), max_usage=10, created_by=1))
        db.commit()
    finally:
        db.close()


if __name__ == "__main__":
    seed()
