from decimal import Decimal
from app.core.database import SessionLocal
from app.models import Product


SAMPLE_PRODUCTS = [
    {"name": "Cheese bread", "price": Decimal("6.50"), "category": "snacks"},
    {"name": "Ham and cheese sandwich", "price": Decimal("12.00"), "category": "snacks"},
    {"name": "Orange juice", "price": Decimal("8.00"), "category": "drinks"},
    {"name": "Water 500ml", "price": Decimal("4.00"), "category": "drinks"},
    {"name": "Fruit salad", "price": Decimal("9.50"), "category": "desserts"},
]


def main():
    db = SessionLocal()
    try:
        for product in SAMPLE_PRODUCTS:
            existing = db.query(Product).filter(Product.name == product["name"]).first()
            if not existing:
                db.add(Product(**product))
        db.commit()
    finally:
        db.close()


if __name__ == "__main__":
    main()
