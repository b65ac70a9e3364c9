from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from vehiculos.core.security import hash_password
from vehiculos.models import User, UserRole, Vehicle

DEFAULT_PASSWORD = "password123"

DEFAULT_USERS = [
    ("admin@micocheideal.com", "Admin", "User", UserRole.ADMIN),
    ("sales@micocheideal.com", "Sales", "User", UserRole.SALES),
    ("customer@micocheideal.com", "Customer", "User", UserRole.CUSTOMER),
]

DEFAULT_VEHICLES = [
    ("Toyota", "Corolla", 2020, 45000, "18000.00", "Excelente estado, un solo dueño",
     {"engine": "1.8L 4-Cylinder", "transmission": "Automatic", "fuel_type": "Gasoline", "color": "White",
      "doors": 4, "seats": 5, "power": 139, "displacement": 1798}),
    ("Honda", "Civic", 2019, 38000, "16500.00", "Muy bien mantenido, bajo kilometraje",
     {"engine": "1.5L Turbo", "transmission": "CVT", "fuel_type": "Gasoline", "color": "Blue",
      "doors": 4, "seats": 5, "power": 174, "displacement": 1498}),
    ("Ford", "Focus", 2021, 22000, "19500.00", "Casi nuevo, garantía de fábrica",
     {"engine": "2.0L 4-Cylinder", "transmission": "Automatic", "fuel_type": "Gasoline", "color": "Red",
      "doors": 4, "seats": 5, "power": 162, "displacement": 1999}),
    ("Volkswagen", "Golf", 2018, 65000, "14000.00", "Buen estado general, económico",
     {"engine": "1.4L TSI", "transmission": "Manual", "fuel_type": "Gasoline", "color": "Gray",
      "doors": 4, "seats": 5, "power": 125, "displacement": 1395}),
    ("BMW", "3 Series", 2020, 35000, "32000.00", "Lujo y rendimiento, full equipo",
     {"engine": "2.0L Turbo", "transmission": "Automatic", "fuel_type": "Gasoline", "color": "Black",
      "doors": 4, "seats": 5, "power": 248, "displacement": 1998}),
]


def seed_users(db: Session) -> None:
    existing = {row[0] for row in db.execute(select(User.email)).all()}
    password_hash = None
    for email, first_name, last_name, role in DEFAULT_USERS:
        if email in existing:
            continue
        password_hash = password_hash or hash_password(DEFAULT_PASSWORD)
        db.add(
            User(
                email=email,
                password_hash=password_hash,
                first_name=first_name,
                last_name=last_name,
                role=role.value,
                is_active=True,
            )
        )
    db.commit()


def seed_vehicles(db: Session) -> None:
    existing = {(row[0], row[1]) for row in db.execute(select(Vehicle.brand, Vehicle.model)).all()}
    for brand, model, year, mileage, price, description, specs in DEFAULT_VEHICLES:
        if (brand, model) in existing:
            continue
        db.add(
            Vehicle(
                brand=brand,
                model=model,
                year=year,
                mileage=mileage,
                price=Decimal(price),
                description=description,
                technical_specs=specs,
            )
        )
    db.commit()
