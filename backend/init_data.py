"""
初始化数据脚本
创建：房间、商品分类、迷你吧商品、示例客人

用法：
  cd backend && python init_data.py
"""
import sys
sys.path.insert(0, '.')

from decimal import Decimal
from app.database import SessionLocal, init_db
from app.models.ontology import (
    Room, RoomStatus, ProductCategory, Product, Guest, ClientType
)


ROOMS = [
    # (房间号, 房型, 可住人数, 每晚价格, 设施)
    ("101", "standard", 2, Decimal("250.00"), ["wifi", "tv"]),
    ("102", "standard", 2, Decimal("250.00"), ["wifi", "tv"]),
    ("103", "standard", 2, Decimal("250.00"), ["wifi", "tv"]),
    ("201", "deluxe", 3, Decimal("380.00"), ["wifi", "tv", "minibar"]),
    ("202", "deluxe", 3, Decimal("380.00"), ["wifi", "tv", "minibar"]),
    ("301", "suite", 4, Decimal("620.00"), ["wifi", "tv", "minibar", "bathtub"]),
]

CATEGORIES = [
    # (名称, 描述, 排序)
    ("Minibar", "In-room minibar items", 1),
    ("Room service", "Food delivered to the room", 2),
    ("Laundry", "Laundry and ironing", 3),
]

PRODUCTS = [
    # (分类, 名称, 价格, 单位, 库存)
    ("Minibar", "Mineral water", Decimal("6.00"), "bottle", 200),
    ("Minibar", "Soft drink", Decimal("8.00"), "can", 150),
    ("Minibar", "Beer", Decimal("12.00"), "can", 120),
    ("Minibar", "Chocolate bar", Decimal("9.50"), "unit", 80),
    ("Room service", "Club sandwich", Decimal("42.00"), "unit", 50),
    ("Room service", "Breakfast tray", Decimal("55.00"), "unit", 50),
    ("Laundry", "Shirt wash", Decimal("18.00"), "piece", 999),
]


def init_rooms(db):
    """初始化房间"""
    for room_number, room_type, capacity, price, amenities in ROOMS:
        if db.query(Room).filter(Room.room_number == room_number).first():
            continue
        db.add(Room(
            room_number=room_number,
            room_type=room_type,
            capacity=capacity,
            price_per_night=price,
            amenities=amenities,
            status=RoomStatus.AVAILABLE,
        ))
    db.flush()


def init_products(db):
    """初始化商品分类和商品"""
    categories = {}
    for name, description, order in CATEGORIES:
        category = db.query(ProductCategory).filter(ProductCategory.name == name).first()
        if not category:
            category = ProductCategory(name=name, description=description, display_order=order)
            db.add(category)
            db.flush()
        categories[name] = category

    for category_name, name, price, unit, stock in PRODUCTS:
        if db.query(Product).filter(Product.name == name).first():
            continue
        db.add(Product(
            category_id=categories[category_name].id,
            name=name,
            price=price,
            unit=unit,
            stock_quantity=stock,
        ))
    db.flush()


def init_guests(db):
    """初始化示例客人"""
    samples = [
        dict(client_type=ClientType.INDIVIDUAL, first_name="Ana", last_name="Souza",
             email="ana.souza@example.com", phone="+55 11 90000-0001",
             document_type="cpf", document_number="000.000.000-01", nationality="BR"),
        dict(client_type=ClientType.COMPANY, company_name="Acme Viagens Ltda",
             trade_name="Acme", email="reservas@acme.example.com",
             document_type="cnpj", document_number="00.000.000/0001-00", nationality="BR"),
    ]
    for data in samples:
        if db.query(Guest).filter(Guest.email == data["email"]).first():
            continue
        db.add(Guest(**data))
    db.flush()


def seed(db):
    """写入全部初始数据（可重复执行）"""
    init_rooms(db)
    init_products(db)
    init_guests(db)
    db.commit()


def main():
    init_db()
    db = SessionLocal()
    try:
        seed(db)
        print(f"房间: {db.query(Room).count()}")
        print(f"商品: {db.query(Product).count()}")
        print(f"客人: {db.query(Guest).count()}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
