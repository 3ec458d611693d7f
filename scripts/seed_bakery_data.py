"""
Seed script: Populate a demo bakery store with realistic data.

What it creates:
- Store (tenant) with an invite code and its timezone.
- Admin user plus a cashier and a kitchen member.
- Categories, brands and suppliers typical for a bakery.
- Products with cost and selling prices, stock and low stock thresholds.
- Completed sales spread over the last N days, plus a few cancelled and pending ones,
  so the dashboard and the reports have something to show.

Run against the configured DATABASE_URL:
    python scripts/seed_bakery_data.py \
        --store-name "Roti Demo Bakery" \
        --email admin@rotidemo.id \
        --days 30 --sales 400

Note: This is intended for development environments only.
"""

import argparse
import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from bakerypos.database.database import Base, SessionLocal, sync_engine
from bakerypos.modules.auth.models import User, UserRole, UserStatus, access_level_for_role
from bakerypos.modules.auth.utils import create_session_token
from bakerypos.modules.brands.models import Brand
from bakerypos.modules.categories.models import Category
from bakerypos.modules.products.models import Product, ProductUnit
from bakerypos.modules.products.stock import derive_stock_status
from bakerypos.modules.stores.models import Store
from bakerypos.modules.stores.service import generate_invite_code
from bakerypos.modules.suppliers.models import Supplier, SupplierCategory
from bakerypos.modules.transactions.models import PaymentType, Transaction, TransactionItem, TransactionStatus
from bakerypos.modules.transactions.numbering import generate_transaction_number

# name -> (colour, [(product, cost, price, unit)])
CATALOG = {
    "Bread": ("#d4a373", [
        ("Roti Tawar", "9000", "15000", ProductUnit.PCS),
        ("Baguette", "11000", "20000", ProductUnit.PCS),
        ("Sourdough Loaf", "22000", "45000", ProductUnit.PCS),
        ("Roti Gandum", "12000", "22000", ProductUnit.PCS),
    ]),
    "Pastries": ("#e9c46a", [
        ("Croissant", "7000", "15000", ProductUnit.PCS),
        ("Pain au Chocolat", "8500", "18000", ProductUnit.PCS),
        ("Danish Keju", "8000", "17000", ProductUnit.PCS),
        ("Cinnamon Roll", "7500", "16000", ProductUnit.PCS),
    ]),
    "Cakes": ("#f4a261", [
        ("Black Forest Slice", "12000", "28000", ProductUnit.PCS),
        ("Cheesecake Slice", "14000", "32000", ProductUnit.PCS),
        ("Bolu Pandan", "25000", "55000", ProductUnit.PCS),
        ("Kue Lapis Legit", "60000", "120000", ProductUnit.PACK),
    ]),
    "Cookies": ("#a98467", [
        ("Nastar", "35000", "75000", ProductUnit.PACK),
        ("Kastengel", "38000", "80000", ProductUnit.PACK),
        ("Choco Chip Cookie", "3000", "7000", ProductUnit.PCS),
    ]),
    "Drinks": ("#6c584c", [
        ("Es Kopi Susu", "8000", "18000", ProductUnit.PCS),
        ("Teh Manis", "2000", "6000", ProductUnit.PCS),
    ]),
}

BRANDS = ["House Bakery", "Roti Nusantara", "Kopi Pagi"]

SUPPLIERS = [
    ("Tepung Bogasari Distributor", SupplierCategory.INGREDIENTS),
    ("Mentega Wijsman Agen", SupplierCategory.INGREDIENTS),
    ("Kardus Kue Prima", SupplierCategory.PACKAGING),
    ("Oven & Mixer Jaya", SupplierCategory.EQUIPMENT),
]


def pick(seq):
    return random.choice(seq)


def create_store(db, name: str, zone: str):
    existing = db.query(Store).filter(Store.name == name).first()
    if existing:
        return existing
    store = Store(
        name=name,
        address="Jl. Braga No. 12, Bandung",
        phone=f"0812{random.randint(1000000, 9999999)}",
        invite_code=generate_invite_code(),
        currency="IDR",
        timezone=zone,
    )
    db.add(store)
    db.commit()
    db.refresh(store)
    return store


def create_member(db, store_id, email: str, name: str, role: UserRole):
    user = db.query(User).filter(User.email == email).first()
    if user:
        return user
    user = User(
        email=email,
        name=name,
        role=role,
        access_level=access_level_for_role(role),
        status=UserStatus.ACTIVE,
        store_id=store_id,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_suppliers_brands(db, store_id):
    suppliers = []
    for name, category in SUPPLIERS:
        supplier = Supplier(store_id=store_id, name=name, category=category, contact_person="Pak Budi")
        db.add(supplier)
        suppliers.append(supplier)
    brands = [Brand(store_id=store_id, name=name) for name in BRANDS]
    db.add_all(brands)
    db.commit()
    return suppliers, brands


def create_products(db, store_id, brands, suppliers):
    products = []
    for category_name, (colour, items) in CATALOG.items():
        category = Category(store_id=store_id, name=category_name, color=colour)
        db.add(category)
        db.flush()
        for index, (name, cost, price, unit) in enumerate(items, start=1):
            stock = random.randint(0, 60)
            min_stock_alert = random.choice([5, 10, 15])
            product = Product(
                store_id=store_id,
                name=name,
                sku=f"{category_name[:3].upper()}-{index:03d}",
                category_id=category.id,
                brand_id=pick(brands).id,
                supplier_id=pick(suppliers).id,
                cost_price=Decimal(cost),
                selling_price=Decimal(price),
                unit=unit,
                stock=stock,
                min_stock_alert=min_stock_alert,
                stock_status=derive_stock_status(stock, min_stock_alert),
            )
            db.add(product)
            products.append(product)
    db.commit()
    return products


def create_sales(db, store_id, cashier_id, products, days: int, sales_count: int):
    """Historical sales; stock is left alone so the catalogue keeps its seeded levels."""
    now = datetime.now(timezone.utc)
    created = 0
    for i in range(sales_count):
        created_at = now - timedelta(days=random.randint(0, days - 1), minutes=random.randint(0, 600))
        lines = random.sample(products, k=random.randint(1, 4))
        items = []
        subtotal = Decimal("0")
        for position, product in enumerate(lines, start=1):
            quantity = random.randint(1, 4)
            line_total = product.selling_price * quantity
            subtotal += line_total
            items.append(TransactionItem(
                line_number=position,
                product_id=product.id,
                product_name=product.name,
                product_sku=product.sku,
                unit_price=product.selling_price,
                quantity=quantity,
                subtotal=line_total,
                created_at=created_at,
            ))

        roll = random.random()
        if roll < 0.9:
            status = TransactionStatus.COMPLETED
        elif roll < 0.95:
            status = TransactionStatus.CANCELLED
        else:
            status = TransactionStatus.PENDING
        payment_type = pick([PaymentType.CASH, PaymentType.CASH, PaymentType.CARD, PaymentType.TRANSFER])
        amount_received = None
        change_due = Decimal("0")
        if payment_type == PaymentType.CASH:
            amount_received = (subtotal / 10000).to_integral_value(rounding="ROUND_CEILING") * 10000
            change_due = amount_received - subtotal

        transaction = Transaction(
            store_id=store_id,
            user_id=cashier_id,
            transaction_number=generate_transaction_number(now_ns=int(created_at.timestamp() * 1e9) + i * 1000),
            subtotal=subtotal,
            tax=Decimal("0"),
            discount=Decimal("0"),
            total=subtotal,
            payment_type=payment_type,
            amount_received=amount_received,
            change_due=change_due,
            status=status,
            created_at=created_at,
            updated_at=created_at,
        )
        transaction.items = items
        db.add(transaction)
        created += 1
        if created % 100 == 0:
            db.commit()
            print(f"  Sales created: {created}")
    db.commit()
    return created


def main():
    parser = argparse.ArgumentParser(description="Seed bakery demo data")
    parser.add_argument("--store-name", default="Roti Demo Bakery")
    parser.add_argument("--email", default="admin@rotidemo.id")
    parser.add_argument("--timezone", default="Asia/Jakarta")
    parser.add_argument("--days", type=int, default=30)
    parser.add_argument("--sales", type=int, default=400)
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables first")
    args = parser.parse_args()

    if args.days < 1:
        parser.error("--days must be at least 1")

    if args.create_tables:
        Base.metadata.create_all(bind=sync_engine)

    db = SessionLocal()
    try:
        store = create_store(db, args.store_name, args.timezone)
        admin = create_member(db, store.id, args.email, "Admin Demo", UserRole.ADMIN)
        cashier = create_member(db, store.id, f"kasir.{args.email}", "Kasir Demo", UserRole.CASHIER)
        create_member(db, store.id, f"dapur.{args.email}", "Dapur Demo", UserRole.KITCHEN)

        products = db.query(Product).filter(Product.store_id == store.id).all()
        if products:
            print(f"Store already has {len(products)} products, keeping its catalogue")
        else:
            print("Creating suppliers and brands...")
            suppliers, brands = create_suppliers_brands(db, store.id)

            print("Creating products...")
            products = create_products(db, store.id, brands, suppliers)
        print(f"Products created: {len(products)}")

        print("Creating sales history...")
        sales_created = create_sales(db, store.id, cashier.id, products, args.days, args.sales)
        print(f"Sales created: {sales_created}")

        print("\nSeed completed.")
        print("Store:")
        print(f"  Name:        {store.name}")
        print(f"  Store ID:    {store.id}")
        print(f"  Invite code: {store.invite_code}")
        print("Session tokens (Authorization: Bearer <token>):")
        print(f"  Admin:   {create_session_token(admin.id)}")
        print(f"  Cashier: {create_session_token(cashier.id)}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
